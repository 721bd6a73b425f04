from typing import ClassVar

from docworker.config.settings import Settings
from docworker.database.repositories.upload_event_repository import UploadEventRepository
from docworker.events.base import BaseEventSource
from docworker.events.postgres_source import PostgresEventSource
from docworker.events.sqs_source import SqsEventSource
from docworker.storage.factory import build_aws_client


class EventSourceFactory:
    """Creates the configured upload event source."""

    SOURCES: ClassVar[tuple[str, ...]] = ("postgres", "sqs")

    @classmethod
    def create(cls, settings: Settings) -> BaseEventSource:
        source = settings.event_source.lower()
        if source == "postgres":
            return PostgresEventSource(UploadEventRepository())
        if source == "sqs":
            if not settings.sqs_queue_url:
                raise ValueError("sqs_queue_url is required for event_source=sqs")
            return SqsEventSource(
                build_aws_client("sqs", settings),
                settings.sqs_queue_url,
                visibility_timeout=settings.sqs_visibility_timeout_seconds,
            )
        raise ValueError(f"Unknown event source '{source}'. Choose from: {list(cls.SOURCES)}")
