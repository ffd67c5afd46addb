"""The coupon service: campaign and coupon operations with RPC-style errors."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from couponsvc.model import Campaign
from couponsvc.repository import CampaignRepository, CouponIssueError


class ErrorCode(Enum):
    """Error codes carried by failed calls, as they appear on the wire."""

    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"
    UNAVAILABLE = "unavailable"
    UNIMPLEMENTED = "unimplemented"
    UNKNOWN = "unknown"


class RpcError(Exception):
    """A failed call, with the code the caller sees and a message."""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(f"{code.value}: {message}")
        self.code = code
        self.message = message


@dataclass(frozen=True)
class Coupon:
    """A coupon handed out from a campaign."""

    campaign_id: int
    code: str
    created_at: datetime


class CouponService:
    """Campaign and coupon operations on top of a database connection."""

    def __init__(self, connection: sqlite3.Connection):
        self.connection = connection
        self._repository = CampaignRepository(connection)

    def create_campaign(self, total_coupons: int, start_at: int) -> Campaign:
        """Create a campaign with this many coupons, starting at a Unix time."""
        try:
            return self._repository.create(total_coupons, start_at)
        except sqlite3.Error as exc:
            raise RpcError(ErrorCode.INTERNAL, str(exc)) from exc

    def get_campaign(self, campaign_id: int) -> Campaign:
        """Return a campaign; raise NOT_FOUND if there is none with this id."""
        try:
            campaign = self._repository.get(campaign_id)
        except sqlite3.Error as exc:
            raise RpcError(ErrorCode.INTERNAL, str(exc)) from exc
        if campaign is None:
            raise RpcError(ErrorCode.NOT_FOUND, f"campaign {campaign_id} not found")
        return campaign

    def issue_coupon(self, campaign_id: int) -> Coupon:
        """Issue one coupon from a campaign."""
        try:
            code = self._repository.issue_coupon(campaign_id)
        except (sqlite3.Error, CouponIssueError) as exc:
            raise RpcError(ErrorCode.INTERNAL, str(exc)) from exc
        return Coupon(
            campaign_id=campaign_id,
            code=code,
            created_at=datetime.now(timezone.utc),
        )

    def get_issued_coupons(self, campaign_id: int) -> list[str]:
        """Return the codes issued so far for a campaign, oldest first."""
        try:
            return self._repository.get_issued_codes(campaign_id)
        except sqlite3.Error as exc:
            raise RpcError(ErrorCode.INTERNAL, str(exc)) from exc