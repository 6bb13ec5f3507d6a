# cards.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import discord

from payouts import COOLDOWN, DECLINED, OPEN, PAID, PayoutRequest, split_reason

BUTTON_PAY = "payout:pay"
BUTTON_COOLDOWN = "payout:cooldown"
BUTTON_DECLINE = "payout:decline"

STATUS_BADGES = {
    OPEN: "🟡 Pending",
    PAID: "🟢 Paid",
    DECLINED: "🔴 Declined",
    COOLDOWN: "🟣 Cooldown",
}

STATUS_COLORS = {
    OPEN: discord.Color(0xFEE75C),
    PAID: discord.Color(0x57F287),
    DECLINED: discord.Color(0xED4245),
    COOLDOWN: discord.Color(0x9B59B6),
}


def status_badge(status: str) -> str:
    return STATUS_BADGES.get(status, status)


def status_color(status: str) -> discord.Color:
    return STATUS_COLORS.get(status, STATUS_COLORS[COOLDOWN])


def card_extra(row: PayoutRequest) -> tuple[Optional[str], Optional[str]]:
    """(date, details) to show on the card. Rows from before the split columns only have ``reason``."""
    if row.event_date is not None or row.event_details is not None:
        return row.event_date, row.event_details
    return split_reason(row.reason)


def payout_embed(row: PayoutRequest, date: Optional[str] = None, details: Optional[str] = None) -> discord.Embed:
    embed = discord.Embed(
        title="Payout Request",
        description=f"**Status:** {status_badge(row.status)}",
        color=status_color(row.status),
        timestamp=datetime.fromtimestamp(row.created_at / 1000, tz=timezone.utc),
    )
    embed.add_field(name="Roblox Username", value=row.roblox_user, inline=True)
    embed.add_field(name="Robux Amount", value=str(row.amount), inline=True)
    if date:
        embed.add_field(name="Date", value=date, inline=True)
    if details:
        embed.add_field(name="Event Details", value=details[:1024], inline=False)
    embed.set_footer(text=f"Req ID #{row.id}")
    return embed


class PayoutControls(discord.ui.View):
    """Pay / Cooldown / Decline. Clicks are routed by custom_id in main.py."""

    def __init__(self, *, disabled: bool = False):
        super().__init__(timeout=None)
        for custom_id, label, style in (
            (BUTTON_PAY, "Pay", discord.ButtonStyle.success),
            (BUTTON_COOLDOWN, "Cooldown", discord.ButtonStyle.secondary),
            (BUTTON_DECLINE, "Decline", discord.ButtonStyle.danger),
        ):
            self.add_item(discord.ui.Button(label=label, style=style, custom_id=custom_id, disabled=disabled))
        # Layout only: a finished view is not kept in the client's view store
        self.stop()


def render_card(row: PayoutRequest) -> tuple[discord.Embed, PayoutControls]:
    date, details = card_extra(row)
    return payout_embed(row, date, details), PayoutControls(disabled=row.status != OPEN)
