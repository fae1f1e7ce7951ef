from __future__ import annotations

import asyncio
from typing import Protocol

import aiohttp
import discord

from .paths import filename_from_url


class FetchError(Exception):
    def __init__(self, attachment_id: int, reason: str) -> None:
        super().__init__(f"attachment {attachment_id}: {reason}")
        self.attachment_id = attachment_id
        self.reason = reason


class AttachmentFetcher(Protocol):
    async def fetch(self, attachment: discord.Attachment) -> bytes: ...

    def filename_for(self, attachment: discord.Attachment) -> str: ...


class NativeFetcher:
    """Download through discord.py's own attachment accessor."""

    async def fetch(self, attachment: discord.Attachment) -> bytes:
        try:
            return await attachment.read()
        except discord.HTTPException as exc:
            raise FetchError(attachment.id, f"read_status_{exc.status}") from exc
        except discord.DiscordException as exc:
            raise FetchError(attachment.id, f"read_error:{exc.__class__.__name__}") from exc

    def filename_for(self, attachment: discord.Attachment) -> str:
        return attachment.filename


class HttpFetcher:
    """Plain GET on the attachment URL. No retries."""

    def __init__(self, session: aiohttp.ClientSession) -> None:
        self._session = session

    async def fetch(self, attachment: discord.Attachment) -> bytes:
        url = attachment.url
        try:
            async with self._session.get(url, allow_redirects=True) as resp:
                if resp.status >= 400:
                    raise FetchError(attachment.id, f"get_status_{resp.status}")
                return await resp.read()
        except aiohttp.ClientError as exc:
            raise FetchError(attachment.id, f"get_error:{exc.__class__.__name__}") from exc
        except asyncio.TimeoutError as exc:
            raise FetchError(attachment.id, "get_error:timeout") from exc

    def filename_for(self, attachment: discord.Attachment) -> str:
        return filename_from_url(attachment.url)


def create_session(timeout: float) -> aiohttp.ClientSession:
    return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout))
