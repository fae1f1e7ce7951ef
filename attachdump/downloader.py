from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import discord
from discord import abc

from .crawler import MessageCrawler
from .http_client import AttachmentFetcher, FetchError
from .paths import output_name, write_unique

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AttachmentOutcome:
    attachment_id: int
    filename: str
    path: Optional[Path] = None
    size: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class TaskResult:
    message_id: int
    outcomes: list[AttachmentOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)


@dataclass(slots=True)
class DownloadSummary:
    channel_id: Optional[int]
    messages_scanned: int = 0
    tasks_spawned: int = 0
    page_errors: int = 0
    results: list[TaskResult] = field(default_factory=list)

    @property
    def files_written(self) -> int:
        return sum(result.succeeded for result in self.results)

    @property
    def attachments_failed(self) -> int:
        return sum(result.failed for result in self.results)

    @property
    def bytes_written(self) -> int:
        return sum(outcome.size for result in self.results for outcome in result.outcomes if outcome.ok)

    def format_message(self) -> str:
        text = (
            f"saved {self.files_written} file(s) ({self.bytes_written} bytes) "
            f"from {self.tasks_spawned} message(s); failed {self.attachments_failed}"
        )
        if self.page_errors:
            text += f"; history errors {self.page_errors}"
        return text


class DownloadOrchestrator:
    def __init__(
        self,
        fetcher: AttachmentFetcher,
        output_dir: Path,
        *,
        max_concurrency: int = 8,
        page_size: int = 100,
        max_page_failures: int = 3,
    ) -> None:
        self._fetcher = fetcher
        self._output_dir = Path(output_dir)
        self._max_concurrency = max(1, int(max_concurrency))
        self._page_size = page_size
        self._max_page_failures = max_page_failures

    async def run(self, channel: abc.Messageable) -> DownloadSummary:
        """Download every attachment in ``channel`` and wait for all tasks."""

        channel_id = getattr(channel, "id", None)
        self._output_dir.mkdir(parents=True, exist_ok=True)
        crawler = MessageCrawler(page_size=self._page_size, max_page_failures=self._max_page_failures)
        summary = DownloadSummary(channel_id=channel_id)
        slots = asyncio.Semaphore(self._max_concurrency)
        tasks: list[asyncio.Task[TaskResult]] = []
        logger.info("download started", extra={"channel_id": channel_id})
        try:
            async for message in crawler.iter_messages(channel):
                summary.messages_scanned += 1
                if not message.attachments:
                    continue
                await slots.acquire()
                tasks.append(asyncio.create_task(self._run_task(message, slots)))
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise
        finally:
            # every spawned task has terminated before run() returns or raises
            joined = await asyncio.gather(*tasks, return_exceptions=True)
        summary.results = [result for result in joined if isinstance(result, TaskResult)]
        summary.tasks_spawned = len(tasks)
        summary.page_errors = crawler.page_errors
        logger.info(
            "download finished",
            extra={
                "channel_id": channel_id,
                "files": summary.files_written,
                "failed": summary.attachments_failed,
            },
        )
        return summary

    async def _run_task(self, message: discord.Message, slots: asyncio.Semaphore) -> TaskResult:
        try:
            return await self.download_message(message.id, list(message.attachments))
        finally:
            slots.release()

    async def download_message(self, message_id: int, attachments: Sequence[discord.Attachment]) -> TaskResult:
        result = TaskResult(message_id=message_id)
        for attachment in attachments:
            try:
                outcome = await self._download_attachment(attachment)
            except Exception as exc:  # noqa: BLE001
                logger.exception(
                    "attachment %s of message %s failed unexpectedly",
                    attachment.id,
                    message_id,
                    extra={"message_id": message_id, "attachment_id": attachment.id},
                )
                outcome = AttachmentOutcome(
                    attachment_id=attachment.id,
                    filename=str(getattr(attachment, "filename", "")),
                    error=f"unexpected_error:{exc.__class__.__name__}",
                )
            result.outcomes.append(outcome)
        return result

    async def _download_attachment(self, attachment: discord.Attachment) -> AttachmentOutcome:
        filename = self._fetcher.filename_for(attachment)
        outcome = AttachmentOutcome(attachment_id=attachment.id, filename=filename)
        try:
            data = await self._fetcher.fetch(attachment)
        except FetchError as exc:
            logger.warning(
                "fetch failed for attachment %s: %s",
                attachment.id,
                exc.reason,
                extra={"attachment_id": attachment.id, "reason": exc.reason},
            )
            outcome.error = exc.reason
            return outcome
        base = self._output_dir / output_name(attachment.id, filename)
        try:
            path = await asyncio.to_thread(write_unique, base, data)
        except OSError as exc:
            logger.warning(
                "write failed for attachment %s: %s",
                attachment.id,
                exc,
                extra={"attachment_id": attachment.id, "error": str(exc)},
            )
            outcome.error = f"write_error:{exc.__class__.__name__}"
            return outcome
        outcome.path = path
        outcome.size = len(data)
        logger.debug("saved", extra={"attachment_id": attachment.id, "path": str(path)})
        return outcome
