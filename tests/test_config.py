from __future__ import annotations

from pathlib import Path

import pytest

from attachdump import main as bot_main
from attachdump.config import ConfigError, load_settings


def test_argument_token_wins_over_environment(clean_env: Path, monkeypatch) -> None:
    monkeypatch.setenv("LITTLE_KITTY", "env-token")

    assert load_settings("cli-token").discord_bot_token == "cli-token"


def test_token_read_from_environment(clean_env: Path, monkeypatch) -> None:
    monkeypatch.setenv("LITTLE_KITTY", "env-token")

    settings = load_settings()

    assert settings.discord_bot_token == "env-token"
    assert settings.output_dir == Path("outputs")
    assert settings.max_concurrency == 8
    assert settings.fetch_mode == "native"


def test_token_read_from_dotenv(clean_env: Path) -> None:
    (clean_env / ".env").write_text("LITTLE_KITTY=file-token\nMAX_CONCURRENCY=2\n", encoding="utf-8")

    settings = load_settings()

    assert settings.discord_bot_token == "file-token"
    assert settings.max_concurrency == 2


def test_missing_token_raises(clean_env: Path) -> None:
    with pytest.raises(ConfigError, match="LITTLE_KITTY"):
        load_settings()


def test_overrides_are_validated(clean_env: Path) -> None:
    settings = load_settings("t", output_dir="dump", fetch_mode="http", max_concurrency=None)
    assert settings.output_dir == Path("dump")
    assert settings.fetch_mode == "http"
    assert settings.max_concurrency == 8

    with pytest.raises(ConfigError):
        load_settings("t", max_concurrency=0)


def test_main_exits_when_token_missing(clean_env: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        bot_main.main([])

    assert excinfo.value.code == 1
