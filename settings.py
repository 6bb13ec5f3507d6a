# settings.py
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # -----------------------
    # Discord
    # -----------------------
    DISCORD_TOKEN: str = ""
    DISCORD_CLIENT_ID: str = ""
    GUILD_ID: str = ""
    PAYOUT_LOGS_CHANNEL_ID: str = ""
    ALLOWED_ROLE_IDS: str = ""  # comma-separated role IDs

    # -----------------------
    # DB
    # -----------------------
    DATABASE_URL: str = ""

    # -----------------------
    # Behaviour
    # -----------------------
    COOLDOWN_SWEEP_SECONDS: int = Field(default=60, ge=1)
    # True keeps the old behaviour: a stale card can still move a handled request.
    ALLOW_STALE_ACTIONS: bool = True
    LOG_LEVEL: str = "INFO"

    @property
    def allowed_role_ids(self) -> set[int]:
        ids = set()
        for part in self.ALLOWED_ROLE_IDS.split(","):
            part = part.strip()
            if part.isdigit():
                ids.add(int(part))
        return ids

    @property
    def guild_id(self) -> int | None:
        raw = self.GUILD_ID.strip()
        return int(raw) if raw.isdigit() else None

    @property
    def payout_logs_channel_id(self) -> int | None:
        raw = self.PAYOUT_LOGS_CHANNEL_ID.strip()
        return int(raw) if raw.isdigit() else None


settings = Settings()


def validate_settings() -> None:
    """
    Fail fast before connecting to Discord when required values are missing.
    """
    missing = []
    if not settings.DISCORD_TOKEN.strip():
        missing.append("DISCORD_TOKEN")
    if not settings.DATABASE_URL.strip():
        missing.append("DATABASE_URL")
    if missing:
        raise RuntimeError(f"Missing required settings: {', '.join(missing)}")
