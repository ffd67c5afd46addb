import re
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from couponsvc.database import Config, connect
from couponsvc.repository import (
    CampaignRepository,
    CouponIssueError,
    generate_coupon_code,
)


@pytest.fixture
def repo():
    connection = connect(Config(":memory:"))
    yield CampaignRepository(connection)
    connection.close()


def _code_pattern(campaign_id):
    return re.compile(rf"^{campaign_id}[\uac00-\ud7a3]{{2}}[0-9]{{4}}$")


def test_create(repo):
    campaign = repo.create(100, int(time.time()))
    assert campaign.total_coupons == 100
    assert campaign.remaining_coupons == 100


def test_get(repo):
    created = repo.create(100, int(time.time()))
    got = repo.get(created.id)
    assert got.id == created.id
    assert got.total_coupons == 100


def test_get_round_trips_all_fields(repo):
    created = repo.create(30, int(time.time()))
    assert repo.get(created.id) == created


def test_get_missing_returns_none(repo):
    assert repo.get(12345) is None


def test_issue_coupon(repo):
    campaign = repo.create(2, int(time.time()))
    code1 = repo.issue_coupon(campaign.id)
    code2 = repo.issue_coupon(campaign.id)

    got = repo.get(campaign.id)
    assert got.remaining_coupons == 0

    codes = repo.get_issued_codes(campaign.id)
    assert len(codes) == 2
    assert codes == [code1, code2]


def test_issue_beyond_total_fails(repo):
    campaign = repo.create(1, int(time.time()))
    repo.issue_coupon(campaign.id)
    with pytest.raises(CouponIssueError) as info:
        repo.issue_coupon(campaign.id)
    assert str(info.value) == f"failed to issue coupon, campaign id: {campaign.id}"
    assert repo.get(campaign.id).remaining_coupons == 0
    assert len(repo.get_issued_codes(campaign.id)) == 1


def test_issue_before_start_fails(repo):
    campaign = repo.create(5, int(time.time()) + 3600)
    with pytest.raises(CouponIssueError):
        repo.issue_coupon(campaign.id)
    assert repo.get(campaign.id).remaining_coupons == 5
    assert repo.get_issued_codes(campaign.id) == []


def test_issue_for_unknown_campaign_fails(repo):
    with pytest.raises(CouponIssueError) as info:
        repo.issue_coupon(999)
    assert info.value.campaign_id == 999


def test_issued_codes_have_expected_shape(repo):
    campaign = repo.create(3, int(time.time()))
    pattern = _code_pattern(campaign.id)
    for _ in range(3):
        assert pattern.match(repo.issue_coupon(campaign.id))


def test_issued_codes_are_per_campaign(repo):
    first = repo.create(1, int(time.time()))
    second = repo.create(1, int(time.time()))
    code = repo.issue_coupon(first.id)
    assert repo.get_issued_codes(first.id) == [code]
    assert repo.get_issued_codes(second.id) == []


def test_concurrent_issue_never_oversells(repo):
    campaign = repo.create(15, int(time.time()))

    def attempt(_):
        try:
            return repo.issue_coupon(campaign.id)
        except CouponIssueError:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(40)))

    issued = [code for code in results if code is not None]
    assert len(issued) == 15
    assert results.count(None) == 25
    assert repo.get(campaign.id).remaining_coupons == 0
    assert sorted(repo.get_issued_codes(campaign.id)) == sorted(issued)


@pytest.mark.parametrize("campaign_id", [1, 42, 1000])
def test_generate_coupon_code_format(campaign_id):
    code = generate_coupon_code(campaign_id)
    assert _code_pattern(campaign_id).match(code)
    assert len(code) == len(str(campaign_id)) + 6