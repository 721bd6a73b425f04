import asyncio
from collections import deque
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from docworker.events.base import BaseEventSource
from docworker.events.s3_notifications import NotificationFormatError, parse_s3_notification
from docworker.logging.logger import Log
from docworker.pipeline.models import UploadEvent


class SqsEventSource(BaseEventSource):
    """Receives S3 upload notifications from an SQS queue.

    A message is deleted once every event it carried has been acked or rejected.
    Until then its visibility timeout is extended periodically, so a long
    execution does not make the message reappear for another consumer.
    """

    WAIT_TIME_SECONDS = 10
    MAX_MESSAGES = 10

    def __init__(
        self,
        client: Any,
        queue_url: str,
        visibility_timeout: int = 300,
        heartbeat_interval: float | None = None,
    ) -> None:
        self._client = client
        self._queue_url = queue_url
        self._visibility_timeout = visibility_timeout
        self._heartbeat_interval = heartbeat_interval or visibility_timeout / 2
        self._buffer: deque[UploadEvent] = deque()
        self._outstanding: dict[str, int] = {}
        self._heartbeats: dict[str, asyncio.Task[None]] = {}

    async def next_event(self) -> UploadEvent | None:
        if not self._buffer:
            await asyncio.to_thread(self._receive)
            for receipt in self._outstanding:
                if receipt not in self._heartbeats:
                    self._heartbeats[receipt] = asyncio.create_task(self._keep_invisible(receipt))
        return self._buffer.popleft() if self._buffer else None

    async def ack(self, event: UploadEvent) -> None:
        await self._settle(event)

    async def reject(self, event: UploadEvent, reason: str) -> None:
        Log.warning(f"Dropping upload event for {event.object_ref}: {reason}")
        await self._settle(event)

    def _receive(self) -> None:
        response = self._client.receive_message(
            QueueUrl=self._queue_url,
            MaxNumberOfMessages=self.MAX_MESSAGES,
            WaitTimeSeconds=self.WAIT_TIME_SECONDS,
            VisibilityTimeout=self._visibility_timeout,
        )
        for message in response.get("Messages") or []:
            receipt = message["ReceiptHandle"]
            try:
                events = parse_s3_notification(message.get("Body", ""), receipt=receipt)
            except NotificationFormatError as exc:
                Log.warning(f"Discarding unreadable SQS message {message.get('MessageId')}: {exc}")
                self._delete(receipt)
                continue
            if not events:
                self._delete(receipt)
                continue
            self._outstanding[receipt] = len(events)
            self._buffer.extend(events)

    async def _settle(self, event: UploadEvent) -> None:
        receipt = event.receipt
        if receipt is None or receipt not in self._outstanding:
            return
        self._outstanding[receipt] -= 1
        if self._outstanding[receipt] <= 0:
            del self._outstanding[receipt]
            heartbeat = self._heartbeats.pop(receipt, None)
            if heartbeat is not None:
                heartbeat.cancel()
            await asyncio.to_thread(self._delete, receipt)

    async def _keep_invisible(self, receipt: str) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            try:
                await asyncio.to_thread(self._extend_visibility, receipt)
            except (ClientError, BotoCoreError) as exc:
                Log.warning(f"Could not extend visibility of SQS message: {exc}")

    def _extend_visibility(self, receipt: str) -> None:
        self._client.change_message_visibility(
            QueueUrl=self._queue_url,
            ReceiptHandle=receipt,
            VisibilityTimeout=self._visibility_timeout,
        )

    def _delete(self, receipt: str) -> None:
        self._client.delete_message(QueueUrl=self._queue_url, ReceiptHandle=receipt)
