from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from typing import Optional, Sequence

import discord

from .config import ConfigError, Settings, load_settings
from .downloader import DownloadSummary
from .fetching import build_orchestrator, open_fetcher

logger = logging.getLogger(__name__)


class DownloadClient(discord.Client):
    """Log in, download one channel, then disconnect."""

    def __init__(self, runner: "DownloadRunner", *, intents: discord.Intents) -> None:
        super().__init__(intents=intents)
        self._runner = runner
        self._started = False

    async def on_ready(self) -> None:
        if self._started:
            return
        self._started = True
        try:
            await self._runner.execute(self)
        finally:
            await self.close()


class DownloadRunner:
    def __init__(self, settings: Settings, channel_id: int) -> None:
        self._settings = settings
        self._channel_id = channel_id
        self.summary: Optional[DownloadSummary] = None

    async def run(self) -> Optional[DownloadSummary]:
        intents = discord.Intents.default()
        intents.message_content = True
        client = DownloadClient(self, intents=intents)
        try:
            await client.start(self._settings.discord_bot_token)
        finally:
            with contextlib.suppress(Exception):
                await client.close()
        return self.summary

    async def execute(self, client: discord.Client) -> None:
        channel = client.get_channel(self._channel_id)
        if channel is None:
            channel = await client.fetch_channel(self._channel_id)
        async with open_fetcher(self._settings) as fetcher:
            self.summary = await build_orchestrator(self._settings, fetcher).run(channel)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Download every attachment of one channel and exit")
    parser.add_argument("channel_id", type=int, help="Channel ID to download")
    parser.add_argument("--token", help="Bot token (defaults to $LITTLE_KITTY)")
    parser.add_argument("--output-dir", help="Directory for downloaded files")
    parser.add_argument("--max-concurrency", type=int, help="Maximum messages downloaded in parallel")
    parser.add_argument("--fetch-mode", choices=["native", "http"], help="How attachment bytes are retrieved")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    try:
        settings = load_settings(
            args.token,
            output_dir=args.output_dir,
            max_concurrency=args.max_concurrency,
            fetch_mode=args.fetch_mode,
        )
    except ConfigError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(level=settings.log_level.upper())
    runner = DownloadRunner(settings, args.channel_id)
    try:
        summary = asyncio.run(runner.run())
    except discord.LoginFailure as exc:
        print(f"[error] login failed: {exc}", file=sys.stderr)
        sys.exit(1)
    if summary is None:
        print("[error] download did not run", file=sys.stderr)
        sys.exit(2)
    print(format_summary(summary))


def format_summary(summary: DownloadSummary) -> str:
    return f"channel={summary.channel_id} {summary.format_message()}"


if __name__ == "__main__":
    main()
