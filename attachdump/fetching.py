from __future__ import annotations

import contextlib
from typing import AsyncIterator

from .config import Settings
from .downloader import DownloadOrchestrator
from .http_client import AttachmentFetcher, HttpFetcher, NativeFetcher, create_session


@contextlib.asynccontextmanager
async def open_fetcher(settings: Settings) -> AsyncIterator[AttachmentFetcher]:
    if settings.fetch_mode == "http":
        async with create_session(settings.http_timeout) as session:
            yield HttpFetcher(session)
    else:
        yield NativeFetcher()


def build_orchestrator(settings: Settings, fetcher: AttachmentFetcher) -> DownloadOrchestrator:
    return DownloadOrchestrator(
        fetcher,
        settings.output_dir,
        max_concurrency=settings.max_concurrency,
        page_size=settings.page_size,
        max_page_failures=settings.max_page_failures,
    )
