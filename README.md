# couponsvc

couponsvc is a small coupon campaign service. Each campaign holds a fixed
number of coupons and opens at a start time. Coupons are issued one at a time.
Each issue runs in a single SQLite transaction on a shared, locked connection,
so a campaign never gives out more coupons than it holds, even under
concurrent requests.

A coupon code has three parts: the campaign id, then two Hangul syllables
(U+AC00 to U+D7A3), then four digits. For example, `1가힣0427`.

The package uses only the standard library.

## Install

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Running the server

```
couponsvc-server
```

Options:

| Option   | Default             | Meaning                    |
|----------|---------------------|----------------------------|
| `--db`   | `./data/coupon.db`  | SQLite database file       |
| `--host` | `localhost`         | address to bind            |
| `--port` | `8080`              | port to bind               |

The server creates the database file's directory if it does not exist. If you
pass `--db :memory:`, the data lives only as long as the process. Stop the
server with Ctrl-C.

The server accepts `POST` requests with JSON bodies on four paths:

| Path                                         | Request fields  | Reply                |
|----------------------------------------------|-----------------|----------------------|
| `/coupon.v1.CouponService/CreateCampaign`    | `totalCoupons`, `startAt` (Unix seconds) | `{"campaign": {...}}` |
| `/coupon.v1.CouponService/GetCampaign`       | `id`            | `{"campaign": {...}}` |
| `/coupon.v1.CouponService/IssueCoupon`       | `campaignId`    | `{"coupon": {...}}`   |
| `/coupon.v1.CouponService/GetIssuedCoupons`  | `campaignId`    | `{"codes": [...]}`    |

Encoding rules:

- Integer fields accept a JSON number or a decimal string, and replies write them as strings.
- Timestamps are RFC 3339 in UTC, such as `2024-01-01T00:00:00Z`.
- A `GET` on a known path returns 405.
- An unknown path returns 404.

A failed call returns a JSON body of the form `{"code": ..., "message": ...}`.
The HTTP status depends on the code:

| Code               | HTTP status |
|--------------------|-------------|
| `invalid_argument` | 400         |
| `not_found`        | 404         |
| `internal`         | 500         |
| `unknown`          | 500         |
| `unimplemented`    | 501         |
| `unavailable`      | 503         |

An unknown campaign id in `GetCampaign` gives `not_found`. A campaign that has
run out of coupons or has not started yet gives `internal`, with the message
`failed to issue coupon, campaign id: N`.

## Running the load test

With the server running, start the client:

```
couponsvc-client
```

Options:

- `--url` sets the server address. The default is `http://localhost:8080`.
- `--coupons` sets the campaign size. The default is 1000.
- `--requests` sets the number of issue requests. The default is 2000.

The client does the following:

1. It creates a campaign that starts now.
2. It sends the issue requests concurrently, on up to 256 threads.
3. It logs each code it receives.
4. It logs a report with these items:
   - the elapsed time
   - the throughput
   - the success and failure counts
   - each error message with how often it occurred
5. It logs how many codes the server has issued and lists the first ten.

With the defaults, exactly 1000 requests should succeed.

## Using it as a library

```python
from couponsvc.database import Config, connect
from couponsvc.repository import CampaignRepository

connection = connect(Config(":memory:"))
repo = CampaignRepository(connection)

campaign = repo.create(2, 0)
first = repo.issue_coupon(campaign.id)
second = repo.issue_coupon(campaign.id)
assert repo.get_issued_codes(campaign.id) == [first, second]
assert repo.get(campaign.id).remaining_coupons == 0
```

Repository behaviour:

- `CampaignRepository.get` returns `None` for an unknown id.
- `issue_coupon` raises `couponsvc.repository.CouponIssueError` when the campaign has no coupons left or has not started.
- `couponsvc.database.connect` raises `DatabaseError` if the database cannot be opened or initialised.
- `couponsvc.database.transaction` is a context manager. It commits on success and rolls back on error.

`couponsvc.service.CouponService` wraps the repository. It returns `Campaign`
and `Coupon` objects. Each failure becomes a `couponsvc.service.RpcError`
that carries an `ErrorCode`.

To serve the service yourself, use one of these:

- `couponsvc.transport.make_server(service, host, port)` returns a threaded HTTP server.
- `couponsvc.server.build_server(db_path, host, port)` opens the database and binds the server in one step.

To call a running server, use `couponsvc.transport.CouponServiceClient`:

```python
from couponsvc.transport import CouponServiceClient

client = CouponServiceClient("http://localhost:8080")
campaign = client.create_campaign(10, 0)
coupon = client.issue_coupon(campaign.id)
print(coupon.code, client.get_issued_coupons(campaign.id))
```

If a call fails, the client raises `RpcError`. If the server cannot be reached,
the code is `unavailable`.

For scripted load tests, use two functions in `couponsvc.client`:

- `run_load_test(client, campaign_id, total_requests)` returns a `LoadTestResult`.
- `format_report(result, codes)` renders a result as text.

## What it does not do

The server speaks plain JSON over HTTP/1.1. It does not offer a gRPC or binary
protobuf endpoint. It has no authentication.