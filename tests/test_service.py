from datetime import datetime, timezone

import pytest

from couponsvc.database import Config, connect
from couponsvc.repository import HANGUL_END, HANGUL_START
from couponsvc.service import CouponService, ErrorCode, RpcError


@pytest.fixture
def service():
    connection = connect(Config(":memory:"))
    yield CouponService(connection)
    connection.close()


def _now() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def test_create_campaign_sets_counts_and_start(service):
    start = _now()
    campaign = service.create_campaign(100, start)
    assert campaign.total_coupons == 100
    assert campaign.remaining_coupons == 100
    assert campaign.start_at == datetime.fromtimestamp(start, tz=timezone.utc)


def test_get_campaign_returns_created(service):
    created = service.create_campaign(100, _now())
    got = service.get_campaign(created.id)
    assert got.id == created.id
    assert got.total_coupons == 100


def test_get_missing_campaign_is_not_found(service):
    with pytest.raises(RpcError) as info:
        service.get_campaign(12345)
    assert info.value.code is ErrorCode.NOT_FOUND


def test_issue_coupon_returns_code_for_campaign(service):
    campaign = service.create_campaign(1, _now())
    coupon = service.issue_coupon(campaign.id)
    prefix = str(campaign.id)
    assert coupon.campaign_id == campaign.id
    assert coupon.code.startswith(prefix)
    rest = coupon.code[len(prefix):]
    assert all(HANGUL_START <= ord(ch) <= HANGUL_END for ch in rest[:2])
    assert rest[2:].isdigit() and len(rest[2:]) == 4
    assert service.get_campaign(campaign.id).remaining_coupons == 0


def test_issue_from_exhausted_campaign_is_internal(service):
    campaign = service.create_campaign(1, _now())
    service.issue_coupon(campaign.id)
    with pytest.raises(RpcError) as info:
        service.issue_coupon(campaign.id)
    assert info.value.code is ErrorCode.INTERNAL
    expected = f"failed to issue coupon, campaign id: {campaign.id}"
    assert info.value.message == expected
    assert str(info.value) == f"internal: {expected}"


def test_issue_before_start_is_refused(service):
    campaign = service.create_campaign(5, _now() + 3600)
    with pytest.raises(RpcError) as info:
        service.issue_coupon(campaign.id)
    assert info.value.code is ErrorCode.INTERNAL
    assert service.get_campaign(campaign.id).remaining_coupons == 5


def test_issued_coupons_listed_in_order(service):
    campaign = service.create_campaign(2, _now())
    first = service.issue_coupon(campaign.id).code
    second = service.issue_coupon(campaign.id).code
    assert service.get_issued_coupons(campaign.id) == [first, second]


def test_new_campaign_has_no_issued_coupons(service):
    campaign = service.create_campaign(3, _now())
    assert service.get_issued_coupons(campaign.id) == []


def test_closed_database_reports_internal():
    connection = connect(Config(":memory:"))
    service = CouponService(connection)
    connection.close()
    with pytest.raises(RpcError) as info:
        service.create_campaign(1, _now())
    assert info.value.code is ErrorCode.INTERNAL


def test_rpc_error_string_carries_code():
    error = RpcError(ErrorCode.NOT_FOUND, "gone")
    assert str(error) == "not_found: gone"
    assert error.message == "gone"