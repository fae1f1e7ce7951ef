from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from attachdump.cli_download import DownloadRunner, format_summary, parse_args
from attachdump.downloader import DownloadSummary
from tests.fixtures.discord_fakes import FakeAttachment, FakeChannel, FakeMessage


class DummyClient:
    def __init__(self, cached: Optional[FakeChannel], remote: FakeChannel) -> None:
        self._cached = cached
        self._remote = remote
        self.fetched: list[int] = []

    def get_channel(self, channel_id: int) -> Optional[FakeChannel]:
        return self._cached

    async def fetch_channel(self, channel_id: int) -> FakeChannel:
        self.fetched.append(channel_id)
        return self._remote


def test_runner_execute_downloads_cached_channel(settings) -> None:
    channel = FakeChannel(5, [FakeMessage(1, [FakeAttachment(11, "a.png")])])
    client = DummyClient(channel, FakeChannel(6, []))
    runner = DownloadRunner(settings, 5)

    asyncio.run(runner.execute(client))  # type: ignore[arg-type]

    assert runner.summary is not None
    assert runner.summary.files_written == 1
    assert client.fetched == []


def test_runner_execute_fetches_uncached_channel(settings) -> None:
    remote = FakeChannel(5, [FakeMessage(1, [FakeAttachment(11, "a.png")])])
    client = DummyClient(None, remote)
    runner = DownloadRunner(settings, 5)

    asyncio.run(runner.execute(client))  # type: ignore[arg-type]

    assert client.fetched == [5]
    assert runner.summary is not None
    assert runner.summary.channel_id == 5


def test_format_summary_and_args() -> None:
    summary = DownloadSummary(channel_id=9, tasks_spawned=0, page_errors=2)

    assert format_summary(summary) == (
        "channel=9 saved 0 file(s) (0 bytes) from 0 message(s); failed 0; history errors 2"
    )
    args = parse_args(["123", "--fetch-mode", "http"])
    assert args.channel_id == 123
    assert args.fetch_mode == "http"


def test_parse_args_requires_channel() -> None:
    with pytest.raises(SystemExit):
        parse_args([])
