# === Payout Bot — /payout form, log-channel cards, Pay / Cooldown / Decline, 14-day cooldown requeue ===
# Rows live in Postgres (payouts table). Cards are re-rendered from the row on every click.
# Cooldown rows are reposted by a 60s sweep once their 14 days are up.

import logging

import discord
import psycopg2
from discord import Interaction
from discord.ext import commands, tasks

import db
from cards import render_card
from dates import normalize_date, today_mdy
from payouts import PayoutStore, compose_reason, now_ms, parse_amount
from permissions import has_payout_permission
from settings import settings, validate_settings
from workflow import StaleAction, apply_action, confirmation_text, post_card, requeue_due_cooldowns

# ---------- LOGGING ----------
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("payoutbot.bot")


# ---------- BOT ----------
class PayoutBot(commands.Bot):
    def __init__(self):
        super().__init__(command_prefix="!", intents=discord.Intents.default())
        self.store = PayoutStore()

    async def setup_hook(self):
        db.init_pool()
        db.init_schema()
        await sync_commands(self)
        cooldown_sweep.start()

    async def close(self):
        cooldown_sweep.cancel()
        await super().close()
        db.close_pool()


bot = PayoutBot()


async def sync_commands(client: commands.Bot):
    try:
        guild_id = settings.guild_id
        if guild_id:
            guild = discord.Object(id=guild_id)
            client.tree.copy_global_to(guild=guild)
            synced = await client.tree.sync(guild=guild)
        else:
            synced = await client.tree.sync()
        logger.info("Synced %s command(s)", len(synced))
    except discord.HTTPException:
        logger.exception("Command sync failed")


@bot.event
async def on_ready():
    logger.info("Logged in as %s (id=%s)", bot.user, bot.user.id)


# ---------- UTIL ----------
async def fetch_logs_channel(guild):
    channel_id = settings.payout_logs_channel_id
    if guild is None or channel_id is None:
        return None
    try:
        channel = guild.get_channel(channel_id) or await guild.fetch_channel(channel_id)
    except discord.HTTPException:
        return None
    if getattr(channel, "type", None) is not discord.ChannelType.text:
        return None
    return channel


# ---------- /payout -> FORM ----------
class PayoutModal(discord.ui.Modal, title="Payout Request"):
    def __init__(self):
        super().__init__()
        self.roblox_user = discord.ui.TextInput(label="Roblox Username", style=discord.TextStyle.short, required=True)
        self.amount = discord.ui.TextInput(
            label="Robux Amount", style=discord.TextStyle.short, required=True, placeholder="e.g. 100"
        )
        self.event_date = discord.ui.TextInput(
            label="Date", style=discord.TextStyle.short, required=True, default=today_mdy(), placeholder="MM/DD/YYYY"
        )
        self.details = discord.ui.TextInput(label="Event Details", style=discord.TextStyle.paragraph, required=True)

        self.add_item(self.roblox_user)
        self.add_item(self.amount)
        self.add_item(self.event_date)
        self.add_item(self.details)

    async def on_submit(self, interaction: Interaction):
        await submit_payout(
            interaction,
            roblox_user=self.roblox_user.value,
            amount_raw=self.amount.value,
            date_raw=self.event_date.value,
            details=self.details.value,
        )


@bot.tree.command(name="payout", description="Open the payout request form")
async def payout_command(interaction: Interaction):
    if not has_payout_permission(interaction.user, settings.allowed_role_ids):
        await interaction.response.send_message("You don’t have permission to use this.", ephemeral=True)
        return
    await interaction.response.send_modal(PayoutModal())


async def submit_payout(interaction: Interaction, *, roblox_user: str, amount_raw: str, date_raw: str, details: str):
    if not has_payout_permission(interaction.user, settings.allowed_role_ids):
        await interaction.response.send_message("You don’t have permission to submit this form.", ephemeral=True)
        return

    roblox_user = (roblox_user or "").strip()
    details = (details or "").strip()

    amount = parse_amount(amount_raw)
    if amount is None:
        await interaction.response.send_message("Robux Amount must be a positive number.", ephemeral=True)
        return

    date_norm = normalize_date(date_raw)
    if not date_norm:
        await interaction.response.send_message(
            "Please enter Date as **MM/DD/YYYY** (e.g., 8/19/2025).", ephemeral=True
        )
        return

    logs_chan = await fetch_logs_channel(interaction.guild)
    if logs_chan is None:
        await interaction.response.send_message("PAYOUT_LOGS_CHANNEL_ID is invalid.", ephemeral=True)
        return

    await interaction.response.defer(ephemeral=True, thinking=True)

    store = interaction.client.store
    try:
        row = store.create(
            roblox_user=roblox_user,
            amount=amount,
            reason=compose_reason(date_norm, details),
            requested_by_id=str(interaction.user.id),
            now=now_ms(),
            event_date=date_norm,
            event_details=details,
        )
    except psycopg2.Error:
        logger.exception("Could not save payout request from %s", interaction.user.id)
        await interaction.followup.send("❌ Could not save the payout request. Please try again.", ephemeral=True)
        return

    try:
        await post_card(store, row, logs_chan)
    except (discord.HTTPException, psycopg2.Error):
        logger.exception("Could not post card for payout #%s", row.id)
        await interaction.followup.send(
            f"❌ Request **#{row.id}** was saved but I couldn't post it in <#{logs_chan.id}>.", ephemeral=True
        )
        return

    await interaction.followup.send(f"Payout request **#{row.id}** posted in <#{logs_chan.id}>.", ephemeral=True)


# ---------- CARD BUTTONS ----------
@bot.listen("on_interaction")
async def on_payout_button(interaction: Interaction):
    if interaction.type is not discord.InteractionType.component:
        return
    custom_id = (interaction.data or {}).get("custom_id", "")
    # Ignore buttons that aren't ours
    if not custom_id.startswith("payout:"):
        return
    await handle_card_action(interaction, custom_id)


async def handle_card_action(interaction: Interaction, action: str):
    if not has_payout_permission(interaction.user, settings.allowed_role_ids):
        await interaction.response.send_message("You don’t have permission to act on payouts.", ephemeral=True)
        return

    store = interaction.client.store
    row = store.find_by_card_message(str(interaction.message.id))
    if row is None:
        await interaction.response.send_message("Record not found (maybe already handled).", ephemeral=True)
        return

    try:
        updated = apply_action(
            store,
            row,
            action,
            actor_id=str(interaction.user.id),
            now=now_ms(),
            allow_stale=settings.ALLOW_STALE_ACTIONS,
        )
    except StaleAction as exc:
        embed, view = render_card(exc.row)
        await interaction.response.edit_message(embed=embed, view=view)
        await interaction.followup.send(
            f"Request **#{exc.row.id}** was already handled (**{exc.row.status}**).", ephemeral=True
        )
        return

    embed, view = render_card(updated)
    await interaction.response.edit_message(embed=embed, view=view)
    await interaction.followup.send(confirmation_text(updated), ephemeral=True)


# ---------- COOLDOWN SWEEP ----------
async def resolve_channel(channel_id: str):
    cid = int(channel_id)
    return bot.get_channel(cid) or await bot.fetch_channel(cid)


@tasks.loop(seconds=settings.COOLDOWN_SWEEP_SECONDS)
async def cooldown_sweep():
    try:
        await requeue_due_cooldowns(
            bot.store,
            resolve_channel,
            default_channel_id=settings.PAYOUT_LOGS_CHANNEL_ID.strip() or None,
        )
    except psycopg2.Error:
        logger.exception("Cooldown sweep could not read due payouts")


@cooldown_sweep.before_loop
async def _wait_until_ready():
    await bot.wait_until_ready()


# ---------- RUN ----------
def run():
    validate_settings()
    bot.run(settings.DISCORD_TOKEN, log_handler=None)


if __name__ == "__main__":
    run()
