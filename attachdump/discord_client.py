from __future__ import annotations

import logging

import discord
from discord import app_commands

from .config import Settings

logger = logging.getLogger(__name__)


def create_client(settings: Settings) -> tuple[discord.Client, app_commands.CommandTree]:
    intents = discord.Intents.default()
    intents.message_content = True

    client = discord.Client(intents=intents)
    tree = app_commands.CommandTree(client)

    @client.event
    async def on_ready() -> None:
        logger.info("logged in as %s", client.user)
        guild_id = settings.guild_id
        if guild_id is not None:
            guild = discord.Object(id=guild_id)
            tree.copy_global_to(guild=guild)
            await tree.sync(guild=guild)
        else:
            await tree.sync()

    return client, tree
