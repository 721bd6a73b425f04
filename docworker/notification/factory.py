from typing import ClassVar

from docworker.config.settings import Settings
from docworker.notification.base import BaseNotifier
from docworker.notification.eventbridge_notifier import EventBridgeNotifier
from docworker.notification.log_notifier import LogNotifier
from docworker.storage.factory import build_aws_client


class NotifierFactory:
    """Creates the configured notifier."""

    NOTIFIERS: ClassVar[tuple[str, ...]] = ("log", "eventbridge")

    @classmethod
    def create(cls, settings: Settings) -> BaseNotifier:
        notifier = settings.notifier.lower()
        if notifier == "log":
            return LogNotifier()
        if notifier == "eventbridge":
            return EventBridgeNotifier(
                client=build_aws_client("events", settings),
                bus_name=settings.eventbridge_bus_name,
                source=settings.eventbridge_source,
            )
        raise ValueError(f"Unknown notifier '{notifier}'. Choose from: {list(cls.NOTIFIERS)}")
