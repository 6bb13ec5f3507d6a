# workflow.py
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from cards import BUTTON_COOLDOWN, BUTTON_DECLINE, BUTTON_PAY, render_card
from payouts import COOLDOWN, DECLINED, OPEN, PAID, PayoutRequest, PayoutStore, now_ms

logger = logging.getLogger("payoutbot.workflow")

COOLDOWN_DAYS = 14
COOLDOWN_MS = COOLDOWN_DAYS * 24 * 60 * 60 * 1000

ACTION_STATUS = {
    BUTTON_PAY: PAID,
    BUTTON_DECLINE: DECLINED,
    BUTTON_COOLDOWN: COOLDOWN,
}


class StaleAction(Exception):
    """The request was already handled and stale actions are not allowed."""

    def __init__(self, row: PayoutRequest):
        super().__init__(f"Payout #{row.id} is already {row.status}")
        self.row = row


def apply_action(
    store: PayoutStore,
    row: PayoutRequest,
    action: str,
    *,
    actor_id: str,
    now: int,
    allow_stale: bool = True,
) -> PayoutRequest:
    """
    Moves ``row`` to the status behind a card button.

    With ``allow_stale`` the update is unconditional (last click wins, even on
    a request that was already paid or declined). Without it only OPEN rows
    move and anything else raises StaleAction.
    """
    status = ACTION_STATUS.get(action)
    if status is None:
        raise ValueError(f"Unknown payout action: {action}")

    if not allow_stale and row.status != OPEN:
        raise StaleAction(row)

    due_at = now + COOLDOWN_MS if status == COOLDOWN else None
    updated = store.set_status(
        row.id,
        status=status,
        actor_id=actor_id,
        now=now,
        due_at=due_at,
        expect_status=None if allow_stale else OPEN,
    )
    if updated is None:
        # Row vanished or someone else moved it first
        raise StaleAction(store.find_by_id(row.id) or row)
    return updated


def confirmation_text(row: PayoutRequest) -> str:
    if row.status == COOLDOWN:
        return f"Cooldown set. I’ll resurface this in **{COOLDOWN_DAYS} days**."
    return f"Marked as **{row.status}**."


async def post_card(store: PayoutStore, row: PayoutRequest, channel):
    embed, view = render_card(row)
    message = await channel.send(embed=embed, view=view)
    try:
        store.attach_card(row.id, message_id=str(message.id), channel_id=str(channel.id))
    except Exception:
        # An unlinked card would answer every click with "Record not found"
        await message.delete()
        raise
    row.message_id = str(message.id)
    row.channel_id = str(channel.id)
    logger.info("posted card for payout #%s in channel %s", row.id, channel.id)
    return message


async def requeue_due_cooldowns(
    store: PayoutStore,
    resolve_channel: Callable[[str], Awaitable[object]],
    *,
    default_channel_id: Optional[str],
    now: Optional[int] = None,
) -> int:
    """
    One sweep: reopen every COOLDOWN row that is due and post a fresh card.

    A row is only reopened if it is still in COOLDOWN, so overlapping sweeps
    never repost it twice. When the repost fails the row goes back to
    COOLDOWN with its old link and due time and is retried next sweep.
    Failures are logged per row; the rest of the sweep carries on.
    """
    now = now_ms() if now is None else now
    requeued = 0
    for row in store.find_due_cooldowns(now):
        try:
            channel_id = row.channel_id or default_channel_id
            if not channel_id:
                raise LookupError("no channel stored and PAYOUT_LOGS_CHANNEL_ID unset")
            channel = await resolve_channel(channel_id)

            reopened = store.reopen_and_detach(row.id, channel_id=channel_id, now=now_ms())
            if reopened is None:
                logger.info("payout #%s already requeued, skipping", row.id)
                continue

            try:
                await post_card(store, reopened, channel)
            except Exception:
                store.restore_cooldown(
                    row.id,
                    message_id=row.message_id,
                    channel_id=row.channel_id,
                    due_at=row.due_at,
                    now=now_ms(),
                )
                raise
            requeued += 1
        except Exception:
            logger.exception("Cooldown repost failed for payout #%s", row.id)
    if requeued:
        logger.info("requeued %s payout(s) from cooldown", requeued)
    return requeued
