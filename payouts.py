# payouts.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

from psycopg2.extras import RealDictCursor

from db import get_conn

OPEN = "OPEN"
PAID = "PAID"
DECLINED = "DECLINED"
COOLDOWN = "COOLDOWN"
STATUSES = (OPEN, PAID, DECLINED, COOLDOWN)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class PayoutRequest:
    id: int
    roblox_user: str
    amount: int
    status: str
    created_at: int
    updated_at: int
    message_id: Optional[str] = None
    channel_id: Optional[str] = None
    reason: Optional[str] = None
    event_date: Optional[str] = None
    event_details: Optional[str] = None
    requested_by_id: Optional[str] = None
    acted_by_id: Optional[str] = None
    due_at: Optional[int] = None

    @classmethod
    def from_row(cls, r: Optional[dict[str, Any]]) -> Optional["PayoutRequest"]:
        if not r:
            return None
        return cls(
            id=r["id"],
            message_id=r["message_id"],
            channel_id=r["channel_id"],
            roblox_user=r["roblox_user"],
            amount=r["amount"],
            reason=r["reason"],
            event_date=r.get("event_date"),
            event_details=r.get("event_details"),
            status=r["status"],
            requested_by_id=r["requested_by_id"],
            acted_by_id=r["acted_by_id"],
            created_at=int(r["created_at"]),
            updated_at=int(r["updated_at"]),
            due_at=None if r["due_at"] is None else int(r["due_at"]),
        )


def parse_amount(raw: str) -> Optional[int]:
    """Positive whole number or None."""
    try:
        amount = int((raw or "").strip(), 10)
    except ValueError:
        return None
    return amount if amount > 0 else None


def compose_reason(event_date: str, details: str) -> str:
    return f"Date: {event_date}\nEvent: {details}"


def split_reason(reason: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """
    Reads the legacy two-line reason back into (date, details).
    Details may themselves contain newlines.
    """
    date_line, _, event_part = (reason or "").partition("\n")
    event_date = date_line[len("Date: "):] if date_line.startswith("Date: ") else date_line
    details = event_part[len("Event: "):] if event_part.startswith("Event: ") else event_part
    return (event_date or None, details or None)


class PayoutStore:
    """
    Single-row statements against the payouts table. Every call is its own
    transaction.
    """

    def _one(self, sql: str, params: tuple) -> Optional[PayoutRequest]:
        with get_conn() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                return PayoutRequest.from_row(cur.fetchone())

    def create(
        self,
        *,
        roblox_user: str,
        amount: int,
        reason: str,
        requested_by_id: str,
        now: int,
        event_date: Optional[str] = None,
        event_details: Optional[str] = None,
    ) -> PayoutRequest:
        if amount <= 0:
            raise ValueError("amount must be positive")
        return self._one(
            """
            INSERT INTO payouts
              (roblox_user, amount, reason, event_date, event_details,
               status, requested_by_id, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, 'OPEN', %s, %s, %s)
            RETURNING *
            """,
            (roblox_user, amount, reason, event_date, event_details, requested_by_id, now, now),
        )

    def attach_card(self, payout_id: int, *, message_id: str, channel_id: str) -> None:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE payouts SET message_id = %s, channel_id = %s WHERE id = %s",
                    (message_id, channel_id, payout_id),
                )

    def find_by_card_message(self, message_id: str) -> Optional[PayoutRequest]:
        return self._one("SELECT * FROM payouts WHERE message_id = %s", (message_id,))

    def find_by_id(self, payout_id: int) -> Optional[PayoutRequest]:
        return self._one("SELECT * FROM payouts WHERE id = %s", (payout_id,))

    def set_status(
        self,
        payout_id: int,
        *,
        status: str,
        actor_id: str,
        now: int,
        due_at: Optional[int] = None,
        expect_status: Optional[str] = None,
    ) -> Optional[PayoutRequest]:
        if status not in STATUSES:
            raise ValueError(f"Unknown payout status: {status}")
        if (status == COOLDOWN) != (due_at is not None):
            raise ValueError("due_at is required for COOLDOWN and only for COOLDOWN")

        if expect_status is None:
            return self._one(
                """
                UPDATE payouts
                SET status = %s, acted_by_id = %s, updated_at = %s, due_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (status, actor_id, now, due_at, payout_id),
            )
        return self._one(
            """
            UPDATE payouts
            SET status = %s, acted_by_id = %s, updated_at = %s, due_at = %s
            WHERE id = %s AND status = %s
            RETURNING *
            """,
            (status, actor_id, now, due_at, payout_id, expect_status),
        )

    def find_due_cooldowns(self, now: int) -> list[PayoutRequest]:
        with get_conn() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    """
                    SELECT * FROM payouts
                    WHERE status = 'COOLDOWN' AND due_at IS NOT NULL AND due_at <= %s
                    ORDER BY due_at, id
                    """,
                    (now,),
                )
                return [PayoutRequest.from_row(r) for r in cur.fetchall()]

    def reopen_and_detach(self, payout_id: int, *, channel_id: Optional[str], now: int) -> Optional[PayoutRequest]:
        # Only a row still in COOLDOWN is reopened; a second sweep gets None.
        return self._one(
            """
            UPDATE payouts
            SET status = 'OPEN', message_id = NULL, channel_id = %s, updated_at = %s, due_at = NULL
            WHERE id = %s AND status = 'COOLDOWN'
            RETURNING *
            """,
            (channel_id, now, payout_id),
        )

    def restore_cooldown(
        self,
        payout_id: int,
        *,
        message_id: Optional[str],
        channel_id: Optional[str],
        due_at: int,
        now: int,
    ) -> Optional[PayoutRequest]:
        return self._one(
            """
            UPDATE payouts
            SET status = 'COOLDOWN', message_id = %s, channel_id = %s, updated_at = %s, due_at = %s
            WHERE id = %s AND status = 'OPEN' AND message_id IS NULL
            RETURNING *
            """,
            (message_id, channel_id, now, due_at, payout_id),
        )
