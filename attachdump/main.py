from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence, Union

import discord
from discord import app_commands

from .config import ConfigError, Settings, load_settings
from .discord_client import create_client
from .downloader import DownloadSummary
from .fetching import build_orchestrator, open_fetcher

logger = logging.getLogger(__name__)

FETCHING_TEXT = "Fetching..."
FINISHED_TEXT = "Finished."


def format_finished(summary: DownloadSummary) -> str:
    return f"{FINISHED_TEXT}\n{summary.format_message()}"


async def run_download(
    interaction: discord.Interaction,
    channel: Optional[discord.abc.Messageable],
    settings: Settings,
) -> DownloadSummary:
    """Acknowledge, download every attachment in the target channel, then edit the reply.

    Errors from sending or editing the reply propagate to the command tree.
    Files already written stay on disk.
    """

    await interaction.response.send_message(FETCHING_TEXT, ephemeral=True)
    target = channel if channel is not None else interaction.channel
    async with open_fetcher(settings) as fetcher:
        summary = await build_orchestrator(settings, fetcher).run(target)
    await interaction.edit_original_response(content=format_finished(summary))
    logger.info(
        "download command finished",
        extra={"channel_id": summary.channel_id, "files": summary.files_written},
    )
    return summary


def register_commands(tree: app_commands.CommandTree, settings: Settings) -> None:
    @tree.command(name="download", description="Download all attachments from this or the given channel")
    @app_commands.describe(channel="Channel to download attachments from")
    async def download(
        interaction: discord.Interaction,
        channel: Optional[Union[discord.TextChannel, discord.Thread, discord.VoiceChannel]] = None,
    ) -> None:
        await run_download(interaction, channel, settings)

    @tree.error
    async def on_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        logger.error("command failed: %s", error, exc_info=error)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the attachment download bot")
    parser.add_argument("token", nargs="?", help="Bot token (defaults to $LITTLE_KITTY)")
    parser.add_argument("--output-dir", help="Directory for downloaded files")
    parser.add_argument("--max-concurrency", type=int, help="Maximum messages downloaded in parallel")
    parser.add_argument("--fetch-mode", choices=["native", "http"], help="How attachment bytes are retrieved")
    parser.add_argument("--guild-id", type=int, help="Sync commands to this guild only")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    try:
        settings = load_settings(
            args.token,
            output_dir=args.output_dir,
            max_concurrency=args.max_concurrency,
            fetch_mode=args.fetch_mode,
            guild_id=args.guild_id,
        )
    except ConfigError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("%s", exc)
        sys.exit(1)

    logging.basicConfig(level=settings.log_level.upper())
    settings.output_dir.mkdir(parents=True, exist_ok=True)
    client, tree = create_client(settings)
    register_commands(tree, settings)

    logger.info("starting bot")
    try:
        client.run(settings.discord_bot_token, log_handler=None)
    except discord.LoginFailure as exc:
        logger.error("login failed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
