import asyncio

from docworker.database.connection import get_connection
from docworker.database.repositories.upload_event_repository import UploadEventRepository
from docworker.events.base import BaseEventSource
from docworker.pipeline.models import UploadEvent


class PostgresEventSource(BaseEventSource):
    """Claims rows from the upload_events table."""

    def __init__(self, repository: UploadEventRepository) -> None:
        self._repository = repository

    async def next_event(self) -> UploadEvent | None:
        return await asyncio.to_thread(self._claim)

    async def ack(self, event: UploadEvent) -> None:
        if event.receipt is not None:
            await asyncio.to_thread(self._repository.mark_done, int(event.receipt))

    async def reject(self, event: UploadEvent, reason: str) -> None:
        if event.receipt is not None:
            await asyncio.to_thread(self._repository.mark_skipped, int(event.receipt), reason)

    def _claim(self) -> UploadEvent | None:
        with get_connection() as conn:
            return self._repository.claim_next_event(conn)
