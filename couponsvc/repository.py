"""Storage of campaigns and the coupons issued from them."""

from __future__ import annotations

import random
import sqlite3
import string
from datetime import datetime, timezone

from couponsvc.database import transaction
from couponsvc.model import Campaign

HANGUL_START = 0xAC00
HANGUL_END = 0xD7A3


class CouponIssueError(Exception):
    """Raised when a campaign cannot hand out another coupon."""

    def __init__(self, campaign_id: int):
        super().__init__(f"failed to issue coupon, campaign id: {campaign_id}")
        self.campaign_id = campaign_id


def _to_db(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(sep=" ", timespec="microseconds")


def _from_db(text: str) -> datetime:
    return datetime.fromisoformat(text)


def generate_coupon_code(campaign_id: int) -> str:
    """Build a code: the campaign id, two Hangul syllables and four digits."""
    hangul = "".join(chr(random.randint(HANGUL_START, HANGUL_END)) for _ in range(2))
    digits = "".join(random.choice(string.digits) for _ in range(4))
    return f"{campaign_id}{hangul}{digits}"


class CampaignRepository:
    """Campaign and coupon persistence on a SQLite connection."""

    def __init__(self, connection: sqlite3.Connection):
        self._connection = connection

    def create(self, total_coupons: int, start_at: int) -> Campaign:
        """Create a campaign starting at the given Unix time."""
        start = datetime.fromtimestamp(start_at, tz=timezone.utc)
        now = datetime.now(timezone.utc)
        with transaction(self._connection) as conn:
            cursor = conn.execute(
                "INSERT INTO campaign (total_coupons, remaining_coupons, start_at, created_at)"
                " VALUES (?, ?, ?, ?)",
                (total_coupons, total_coupons, _to_db(start), _to_db(now)),
            )
            campaign_id = cursor.lastrowid
        return Campaign(
            id=campaign_id,
            total_coupons=total_coupons,
            remaining_coupons=total_coupons,
            start_at=start,
            created_at=now,
        )

    def get(self, campaign_id: int) -> Campaign | None:
        """Return the campaign with this id, or None if there is none."""
        with transaction(self._connection) as conn:
            row = conn.execute(
                "SELECT id, total_coupons, remaining_coupons, start_at, created_at"
                " FROM campaign WHERE id = ?",
                (campaign_id,),
            ).fetchone()
        if row is None:
            return None
        ident, total, remaining, start_at, created_at = row
        return Campaign(
            id=ident,
            total_coupons=total,
            remaining_coupons=remaining,
            start_at=_from_db(start_at),
            created_at=_from_db(created_at),
        )

    def issue_coupon(self, campaign_id: int) -> str:
        """Take one coupon from a started campaign and return its code."""
        now = _to_db(datetime.now(timezone.utc))
        with transaction(self._connection) as conn:
            cursor = conn.execute(
                "UPDATE campaign SET remaining_coupons = remaining_coupons - 1"
                " WHERE id = ? AND remaining_coupons > 0 AND start_at <= ?",
                (campaign_id, now),
            )
            if cursor.rowcount == 0:
                raise CouponIssueError(campaign_id)
            code = generate_coupon_code(campaign_id)
            conn.execute(
                "INSERT INTO coupon (campaign_id, code, created_at) VALUES (?, ?, ?)",
                (campaign_id, code, _to_db(datetime.now(timezone.utc))),
            )
        return code

    def get_issued_codes(self, campaign_id: int) -> list[str]:
        """Return the codes issued for a campaign, oldest first."""
        with transaction(self._connection) as conn:
            rows = conn.execute(
                "SELECT code FROM coupon WHERE campaign_id = ? ORDER BY id",
                (campaign_id,),
            ).fetchall()
        return [code for (code,) in rows]