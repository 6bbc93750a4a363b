"""Pydantic BaseSettings — wallet credentials and token-lifecycle tuning."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ─────────────────────────────────────────────
    APP_ENV: Literal["dev", "staging", "prod"] = "dev"
    APP_NAME: str = "bluefin-auth"
    LOG_LEVEL: str = "INFO"

    # ── Network / API ───────────────────────────────────────────
    BLUEFIN_SANDBOX: bool = False
    BLUEFIN_AUTH_URL: str = ""  # overrides the environment default when set
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # ── Credentials (never commit real values) ──────────────────
    BLUEFIN_WALLET_ADDRESS: str = ""
    BLUEFIN_PRIVATE_KEY: SecretStr = SecretStr("")

    # ── Token lifecycle ─────────────────────────────────────────
    AUTH_AUDIENCE: str = "api"
    ACCESS_TOKEN_LIFETIME_SECONDS: float = Field(default=300.0, gt=0)
    REFRESH_TOKEN_LIFETIME_SECONDS: float = Field(default=2_592_000.0, gt=0)
    ACCESS_RENEWAL_RATIO: float = Field(default=0.8, gt=0, le=1)
    REFRESH_SAFETY_BUFFER_SECONDS: float = Field(default=60.0, ge=0)

    # ── Trading ─────────────────────────────────────────────────
    ORDER_EXPIRATION_MS: int = Field(default=86_400_000, gt=0)


settings = Settings()
