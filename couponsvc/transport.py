"""JSON over HTTP transport for the coupon service: handler, server and client."""

from __future__ import annotations

import json
import logging
import re
import urllib.error
import urllib.request
from datetime import datetime, timedelta, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable
from urllib.parse import urlsplit

from couponsvc.model import Campaign
from couponsvc.service import Coupon, CouponService, ErrorCode, RpcError

logger = logging.getLogger(__name__)

SERVICE_NAME = "coupon.v1.CouponService"
SERVICE_PATH = f"/{SERVICE_NAME}/"
CREATE_CAMPAIGN_PROCEDURE = "/coupon.v1.CouponService/CreateCampaign"
GET_CAMPAIGN_PROCEDURE = "/coupon.v1.CouponService/GetCampaign"
ISSUE_COUPON_PROCEDURE = "/coupon.v1.CouponService/IssueCoupon"
GET_ISSUED_COUPONS_PROCEDURE = "/coupon.v1.CouponService/GetIssuedCoupons"

_HTTP_STATUS = {
    ErrorCode.INVALID_ARGUMENT: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INTERNAL: 500,
    ErrorCode.UNKNOWN: 500,
    ErrorCode.UNIMPLEMENTED: 501,
    ErrorCode.UNAVAILABLE: 503,
}

_TIMESTAMP = re.compile(
    r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d{1,9}))?(Z|[+-]\d{2}:\d{2})"
)


def _format_timestamp(moment: datetime) -> str:
    moment = moment.astimezone(timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        fraction = f"{moment.microsecond:06d}"
        if fraction.endswith("000"):
            fraction = fraction[:3]
        text += "." + fraction
    return text + "Z"


def _parse_timestamp(text: Any) -> datetime:
    match = _TIMESTAMP.fullmatch(text) if isinstance(text, str) else None
    if match is None:
        raise RpcError(ErrorCode.INTERNAL, f"invalid timestamp: {text!r}")
    base, fraction, zone = match.groups()
    moment = datetime.strptime(base, "%Y-%m-%dT%H:%M:%S")
    micro = int((fraction or "0").ljust(6, "0")[:6])
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = 1 if zone[0] == "+" else -1
        hours, minutes = int(zone[1:3]), int(zone[4:6])
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
    return moment.replace(microsecond=micro, tzinfo=tz).astimezone(timezone.utc)


def _int_field(message: dict, name: str) -> int:
    value = message.get(name, 0)
    if isinstance(value, bool):
        raise RpcError(ErrorCode.INVALID_ARGUMENT, f"invalid value for {name}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    raise RpcError(ErrorCode.INVALID_ARGUMENT, f"invalid value for {name}")


def _campaign_to_json(campaign: Campaign) -> dict:
    return {
        "id": str(campaign.id),
        "totalCoupons": str(campaign.total_coupons),
        "remainingCoupons": str(campaign.remaining_coupons),
        "startAt": _format_timestamp(campaign.start_at),
        "createdAt": _format_timestamp(campaign.created_at),
    }


def _campaign_from_json(message: dict) -> Campaign:
    return Campaign(
        id=_int_field(message, "id"),
        total_coupons=_int_field(message, "totalCoupons"),
        remaining_coupons=_int_field(message, "remainingCoupons"),
        start_at=_parse_timestamp(message.get("startAt")),
        created_at=_parse_timestamp(message.get("createdAt")),
    )


def _create_campaign(service: CouponService, message: dict) -> dict:
    campaign = service.create_campaign(
        _int_field(message, "totalCoupons"), _int_field(message, "startAt")
    )
    return {"campaign": _campaign_to_json(campaign)}


def _get_campaign(service: CouponService, message: dict) -> dict:
    return {"campaign": _campaign_to_json(service.get_campaign(_int_field(message, "id")))}


def _issue_coupon(service: CouponService, message: dict) -> dict:
    coupon = service.issue_coupon(_int_field(message, "campaignId"))
    return {
        "coupon": {
            "campaignId": str(coupon.campaign_id),
            "code": coupon.code,
            "createdAt": _format_timestamp(coupon.created_at),
        }
    }


def _get_issued_coupons(service: CouponService, message: dict) -> dict:
    return {"codes": service.get_issued_coupons(_int_field(message, "campaignId"))}


_ROUTES: dict[str, Callable[[CouponService, dict], dict]] = {
    CREATE_CAMPAIGN_PROCEDURE: _create_campaign,
    GET_CAMPAIGN_PROCEDURE: _get_campaign,
    ISSUE_COUPON_PROCEDURE: _issue_coupon,
    GET_ISSUED_COUPONS_PROCEDURE: _get_issued_coupons,
}


def make_handler(service: CouponService) -> type[BaseHTTPRequestHandler]:
    """Build a request handler class that serves the service's procedures."""

    class Handler(BaseHTTPRequestHandler):
        protocol_version = "HTTP/1.1"

        def do_POST(self) -> None:
            route = _ROUTES.get(urlsplit(self.path).path)
            body = self._read_body()
            if route is None:
                self._send(404, b"404 page not found\n", "text/plain; charset=utf-8")
                return
            try:
                payload = route(service, self._decode(body))
            except RpcError as exc:
                self._send_error(exc)
                return
            except Exception as exc:  # noqa: BLE001 - every failure is answered
                logger.exception("unexpected failure in %s", self.path)
                self._send_error(RpcError(ErrorCode.INTERNAL, str(exc)))
                return
            self._send_json(200, payload)

        def do_GET(self) -> None:
            if urlsplit(self.path).path in _ROUTES:
                self._send(
                    405, b"method not allowed\n", "text/plain; charset=utf-8",
                    extra={"Allow": "POST"},
                )
            else:
                self._send(404, b"404 page not found\n", "text/plain; charset=utf-8")

        def _read_body(self) -> bytes:
            length = int(self.headers.get("Content-Length") or 0)
            return self.rfile.read(length) if length > 0 else b""

        @staticmethod
        def _decode(body: bytes) -> dict:
            if not body.strip():
                return {}
            try:
                message = json.loads(body)
            except ValueError as exc:
                raise RpcError(ErrorCode.INVALID_ARGUMENT, f"unmarshal message: {exc}") from exc
            if not isinstance(message, dict):
                raise RpcError(ErrorCode.INVALID_ARGUMENT, "message must be a JSON object")
            return message

        def _send_error(self, error: RpcError) -> None:
            self._send_json(
                _HTTP_STATUS.get(error.code, 500),
                {"code": error.code.value, "message": error.message},
            )

        def _send_json(self, status: int, payload: dict) -> None:
            self._send(status, json.dumps(payload).encode("utf-8"), "application/json")

        def _send(self, status: int, body: bytes, content_type: str, extra=None) -> None:
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            for name, value in (extra or {}).items():
                self.send_header(name, value)
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args: Any) -> None:
            logger.debug("%s - " + format, self.address_string(), *args)

    return Handler


class _CouponHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    request_queue_size = 1024

    def __init__(self, address, handler, service: CouponService):
        super().__init__(address, handler)
        self.service = service


def make_server(service: CouponService, host: str, port: int) -> ThreadingHTTPServer:
    """Bind a threaded HTTP server for the service to ``host:port``."""
    return _CouponHTTPServer((host, port), make_handler(service), service)


def _error_from_response(status: int, body: bytes) -> RpcError:
    try:
        message = json.loads(body)
        code = ErrorCode(message["code"])
        return RpcError(code, str(message.get("message", "")))
    except (ValueError, KeyError, TypeError):
        code = ErrorCode.UNIMPLEMENTED if status == 404 else ErrorCode.UNKNOWN
        return RpcError(code, f"HTTP status {status}")


class CouponServiceClient:
    """Calls a coupon service over HTTP."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _call(self, procedure: str, message: dict) -> dict:
        request = urllib.request.Request(
            self._base_url + procedure,
            data=json.dumps(message).encode("utf-8"),
            method="POST",
            headers={"Content-Type": "application/json"},
        )
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = response.read()
        except urllib.error.HTTPError as exc:
            try:
                raise _error_from_response(exc.code, exc.read()) from None
            finally:
                exc.close()
        except urllib.error.URLError as exc:
            raise RpcError(ErrorCode.UNAVAILABLE, str(exc.reason)) from exc
        except OSError as exc:
            raise RpcError(ErrorCode.UNAVAILABLE, str(exc)) from exc
        try:
            reply = json.loads(body) if body.strip() else {}
        except ValueError as exc:
            raise RpcError(ErrorCode.INTERNAL, f"unmarshal message: {exc}") from exc
        if not isinstance(reply, dict):
            raise RpcError(ErrorCode.INTERNAL, "reply is not a JSON object")
        return reply

    def create_campaign(self, total_coupons: int, start_at: int) -> Campaign:
        """Create a campaign on the server."""
        reply = self._call(
            CREATE_CAMPAIGN_PROCEDURE,
            {"totalCoupons": str(total_coupons), "startAt": str(start_at)},
        )
        return _campaign_from_json(reply.get("campaign") or {})

    def get_campaign(self, campaign_id: int) -> Campaign:
        """Fetch a campaign by id."""
        reply = self._call(GET_CAMPAIGN_PROCEDURE, {"id": str(campaign_id)})
        return _campaign_from_json(reply.get("campaign") or {})

    def issue_coupon(self, campaign_id: int) -> Coupon:
        """Ask the server to issue one coupon from a campaign."""
        reply = self._call(ISSUE_COUPON_PROCEDURE, {"campaignId": str(campaign_id)})
        coupon = reply.get("coupon") or {}
        return Coupon(
            campaign_id=_int_field(coupon, "campaignId"),
            code=str(coupon.get("code", "")),
            created_at=_parse_timestamp(coupon.get("createdAt")),
        )

    def get_issued_coupons(self, campaign_id: int) -> list[str]:
        """List the codes issued for a campaign."""
        reply = self._call(GET_ISSUED_COUPONS_PROCEDURE, {"campaignId": str(campaign_id)})
        return [str(code) for code in reply.get("codes") or []]