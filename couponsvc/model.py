"""Domain objects of the coupon service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Campaign:
    """A coupon campaign with a fixed number of coupons to hand out."""

    id: int
    total_coupons: int
    remaining_coupons: int
    start_at: datetime
    created_at: datetime