# tests/conftest.py

from dataclasses import replace
from types import SimpleNamespace
from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import discord
import pytest

from payouts import COOLDOWN, OPEN, STATUSES, PayoutRequest


class InMemoryPayoutStore:
    """Same surface as payouts.PayoutStore, backed by a dict."""

    def __init__(self):
        self.rows: Dict[int, PayoutRequest] = {}
        self._next_id = 1

    def _get(self, payout_id: int) -> Optional[PayoutRequest]:
        row = self.rows.get(payout_id)
        return replace(row) if row else None

    def create(self, *, roblox_user, amount, reason, requested_by_id, now, event_date=None, event_details=None):
        if amount <= 0:
            raise ValueError("amount must be positive")
        row = PayoutRequest(
            id=self._next_id,
            roblox_user=roblox_user,
            amount=amount,
            reason=reason,
            event_date=event_date,
            event_details=event_details,
            status=OPEN,
            requested_by_id=requested_by_id,
            created_at=now,
            updated_at=now,
        )
        self.rows[row.id] = row
        self._next_id += 1
        return replace(row)

    def attach_card(self, payout_id, *, message_id, channel_id):
        row = self.rows.get(payout_id)
        if row:
            row.message_id = message_id
            row.channel_id = channel_id

    def find_by_card_message(self, message_id):
        for row in self.rows.values():
            if row.message_id == message_id:
                return replace(row)
        return None

    def find_by_id(self, payout_id):
        return self._get(payout_id)

    def set_status(self, payout_id, *, status, actor_id, now, due_at=None, expect_status=None):
        assert status in STATUSES
        row = self.rows.get(payout_id)
        if row is None or (expect_status is not None and row.status != expect_status):
            return None
        row.status = status
        row.acted_by_id = actor_id
        row.updated_at = now
        row.due_at = due_at
        return replace(row)

    def find_due_cooldowns(self, now) -> List[PayoutRequest]:
        return [
            replace(r)
            for r in self.rows.values()
            if r.status == COOLDOWN and r.due_at is not None and r.due_at <= now
        ]

    def reopen_and_detach(self, payout_id, *, channel_id, now):
        row = self.rows.get(payout_id)
        if row is None or row.status != COOLDOWN:
            return None
        row.status = OPEN
        row.message_id = None
        row.channel_id = channel_id
        row.updated_at = now
        row.due_at = None
        return replace(row)

    def restore_cooldown(self, payout_id, *, message_id, channel_id, due_at, now):
        row = self.rows.get(payout_id)
        if row is None or row.status != OPEN or row.message_id is not None:
            return None
        row.status = COOLDOWN
        row.message_id = message_id
        row.channel_id = channel_id
        row.due_at = due_at
        row.updated_at = now
        return replace(row)


@pytest.fixture
def store() -> InMemoryPayoutStore:
    return InMemoryPayoutStore()


# ---------------------------
# Discord fakes
# ---------------------------

class FakeChannel:
    def __init__(self, channel_id: int = 555, *, fail: bool = False, error: Optional[Exception] = None):
        self.id = channel_id
        self.type = discord.ChannelType.text
        self.fail = fail
        self.error = error
        self.sent: list = []
        self.messages: list = []
        self._next_message_id = 9000

    async def send(self, **kwargs):
        if self.error is not None:
            raise self.error
        if self.fail:
            raise RuntimeError("send failed")
        self._next_message_id += 1
        self.sent.append(kwargs)
        message = SimpleNamespace(id=self._next_message_id, delete=AsyncMock())
        self.messages.append(message)
        return message


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


def make_member(user_id: int = 42, *, manage_guild: bool = False, role_ids=()):
    return SimpleNamespace(
        id=user_id,
        guild_permissions=SimpleNamespace(manage_guild=manage_guild),
        roles=[SimpleNamespace(id=r) for r in role_ids],
    )


def make_interaction(store, *, user=None, guild=None, message_id: Optional[int] = None, custom_id: str = ""):
    return SimpleNamespace(
        user=user or make_member(manage_guild=True),
        guild=guild,
        client=SimpleNamespace(store=store),
        message=SimpleNamespace(id=message_id) if message_id is not None else None,
        type=discord.InteractionType.component,
        data={"custom_id": custom_id},
        response=SimpleNamespace(
            send_message=AsyncMock(),
            send_modal=AsyncMock(),
            defer=AsyncMock(),
            edit_message=AsyncMock(),
        ),
        followup=SimpleNamespace(send=AsyncMock()),
    )
