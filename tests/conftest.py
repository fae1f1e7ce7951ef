from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from attachdump.config import load_settings


@pytest.fixture
def clean_env(monkeypatch, tmp_path: Path) -> Path:
    """Run without token variables or a stray ``.env`` in the working directory."""

    for name in ("LITTLE_KITTY", "DISCORD_BOT_TOKEN", "OUTPUT_DIR", "MAX_CONCURRENCY", "FETCH_MODE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def settings(clean_env: Path):
    return load_settings("test-token", output_dir=clean_env / "outputs", max_concurrency=4)
