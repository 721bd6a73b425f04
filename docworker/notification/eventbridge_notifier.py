import asyncio
import json
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from docworker.notification.base import BaseNotifier
from docworker.notification.exceptions import NotificationError
from docworker.pipeline.models import Execution
from docworker.pipeline.states import ExecutionStatus

DETAIL_TYPES = {
    ExecutionStatus.COMPLETED: "DocumentProcessed",
    ExecutionStatus.FAILED: "DocumentProcessingFailed",
}


class EventBridgeNotifier(BaseNotifier):
    """Publishes terminal executions as EventBridge events."""

    def __init__(self, client: Any, bus_name: str, source: str) -> None:
        self._client = client
        self._bus_name = bus_name
        self._source = source

    async def notify(self, execution: Execution) -> None:
        detail_type = DETAIL_TYPES.get(execution.status)
        if detail_type is None:
            raise NotificationError(f"Execution {execution.id} is not terminal")
        entry = {
            "EventBusName": self._bus_name,
            "Source": self._source,
            "DetailType": detail_type,
            "Detail": json.dumps(execution.summary()),
        }
        try:
            response = await asyncio.to_thread(self._client.put_events, Entries=[entry])
        except (ClientError, BotoCoreError) as exc:
            raise NotificationError(f"EventBridge put_events failed: {exc}") from exc
        if response.get("FailedEntryCount"):
            raise NotificationError(
                f"EventBridge rejected event for execution {execution.id}: {response.get('Entries')}"
            )
