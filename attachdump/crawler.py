from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional

import aiohttp
import discord
from discord import abc

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
PAGE_ERRORS = (discord.HTTPException, aiohttp.ClientError, OSError, asyncio.TimeoutError)


class MessageCrawler:
    """Traverse channel history newest-first in bounded batches.

    Each batch is one ``history()`` request chained with ``before=`` the
    oldest message of the previous batch, so every message is yielded once.
    A failed batch is logged and retried; after ``max_page_failures``
    consecutive failures the traversal ends instead of raising.
    """

    def __init__(self, *, page_size: int = MAX_PAGE_SIZE, max_page_failures: int = 3) -> None:
        self._page_size = max(1, min(int(page_size), MAX_PAGE_SIZE))
        self._max_page_failures = max(1, int(max_page_failures))
        self.page_errors = 0

    async def iter_messages(self, channel: abc.Messageable) -> AsyncIterator[discord.Message]:
        channel_id = getattr(channel, "id", None)
        before: Optional[discord.abc.Snowflake] = None
        failures = 0
        while True:
            try:
                batch = await self._fetch_batch(channel, before)
            except PAGE_ERRORS as exc:
                self.page_errors += 1
                failures += 1
                reason = getattr(exc, "status", None) or exc.__class__.__name__
                logger.warning(
                    "history page failed for channel %s (attempt %d): %s",
                    channel_id,
                    failures,
                    reason,
                    extra={"channel_id": channel_id, "reason": reason, "attempt": failures},
                )
                if failures >= self._max_page_failures:
                    logger.error("history scan aborted for channel %s", channel_id, extra={"channel_id": channel_id})
                    return
                continue
            failures = 0
            for message in batch:
                yield message
            if len(batch) < self._page_size:
                return
            before = discord.Object(id=batch[-1].id)

    async def _fetch_batch(
        self,
        channel: abc.Messageable,
        before: Optional[discord.abc.Snowflake],
    ) -> list[discord.Message]:
        return [message async for message in channel.history(limit=self._page_size, before=before)]
