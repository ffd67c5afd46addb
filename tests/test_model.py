import dataclasses
from datetime import datetime, timezone

import pytest

from couponsvc.model import Campaign


def _campaign(**overrides):
    values = dict(
        id=1,
        total_coupons=100,
        remaining_coupons=100,
        start_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        created_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return Campaign(**values)


def test_fields_hold_given_values():
    start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    campaign = _campaign(id=7, total_coupons=50, remaining_coupons=20, start_at=start)
    assert (campaign.id, campaign.total_coupons, campaign.remaining_coupons) == (7, 50, 20)
    assert campaign.start_at == start


def test_equal_campaigns_compare_equal():
    assert _campaign() == _campaign()
    assert _campaign(remaining_coupons=99) != _campaign()


def test_campaign_is_immutable():
    campaign = _campaign()
    with pytest.raises(dataclasses.FrozenInstanceError):
        campaign.remaining_coupons = 0
    assert campaign.remaining_coupons == 100
    assert campaign == _campaign()


def test_replace_produces_updated_copy():
    campaign = _campaign()
    updated = dataclasses.replace(campaign, remaining_coupons=campaign.remaining_coupons - 1)
    assert updated.remaining_coupons == campaign.remaining_coupons - 1
    assert updated.total_coupons == campaign.total_coupons
    assert updated.id == campaign.id