from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

TOKEN_ENV = "LITTLE_KITTY"


class ConfigError(RuntimeError):
    """Raised when startup configuration is incomplete or invalid."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    discord_bot_token: str = Field(
        validation_alias=AliasChoices("discord_bot_token", TOKEN_ENV, "DISCORD_BOT_TOKEN"),
    )
    guild_id: Optional[int] = None
    output_dir: Path = Path("outputs")
    max_concurrency: int = Field(default=8, ge=1)
    page_size: int = Field(default=100, ge=1, le=100)
    max_page_failures: int = Field(default=3, ge=1)
    fetch_mode: Literal["native", "http"] = "native"
    http_timeout: float = Field(default=60.0, gt=0)
    log_level: str = "INFO"


def load_settings(token: Optional[str] = None, **overrides) -> Settings:
    """Build the process settings once.

    A token passed explicitly (e.g. the first command-line argument) wins over
    ``LITTLE_KITTY`` / ``DISCORD_BOT_TOKEN`` from the environment or ``.env``.

    Raises:
        ConfigError: If no token is available or a value fails validation.
    """

    values = {key: value for key, value in overrides.items() if value is not None}
    if token:
        values["discord_bot_token"] = token
    try:
        settings = Settings(**values)
    except ValidationError as exc:
        if any(err.get("type") == "missing" for err in exc.errors()):
            raise ConfigError(f"missing {TOKEN_ENV}: pass a token argument or set the environment variable") from exc
        raise ConfigError(str(exc)) from exc
    if not settings.discord_bot_token.strip():
        raise ConfigError(f"missing {TOKEN_ENV}: token is empty")
    return settings

