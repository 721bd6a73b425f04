from abc import ABC, abstractmethod

from docworker.pipeline.models import UploadEvent


class BaseEventSource(ABC):
    """Delivers upload events to the worker."""

    @abstractmethod
    async def next_event(self) -> UploadEvent | None:
        """Return the next pending event, or None when nothing is waiting."""

    @abstractmethod
    async def ack(self, event: UploadEvent) -> None:
        """Confirm the event was handed to the orchestrator."""

    @abstractmethod
    async def reject(self, event: UploadEvent, reason: str) -> None:
        """Drop an event that will not be processed."""
