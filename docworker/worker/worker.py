import asyncio
from collections.abc import Awaitable

from docworker.config.settings import Settings
from docworker.events.base import BaseEventSource
from docworker.logging.logger import Log
from docworker.pipeline.exceptions import ExecutionAlreadyRunningError
from docworker.pipeline.models import UploadEvent
from docworker.pipeline.orchestrator import Orchestrator


class Worker:
    """Intake loop: wait for a slot -> take an event -> start an execution task."""

    def __init__(
        self,
        event_source: BaseEventSource,
        orchestrator: Orchestrator,
        settings: Settings,
    ) -> None:
        self._event_source = event_source
        self._orchestrator = orchestrator
        self._settings = settings
        self._tasks: set[asyncio.Task[None]] = set()

    async def run(self, max_events: int | None = None) -> None:
        """Main intake loop. Runs until cancelled.

        If max_events is set, stop taking events after that many (for testing).
        In-flight executions are always awaited before returning.
        """
        Log.info("Worker started, waiting for upload events")
        slots = asyncio.Semaphore(self._settings.max_concurrent_executions)
        dispatched = 0
        try:
            while max_events is None or dispatched < max_events:
                await slots.acquire()
                event = await self._try_next_event()
                if event is None:
                    slots.release()
                    Log.debug("No upload events available, sleeping")
                    await asyncio.sleep(self._settings.event_poll_interval_seconds)
                    continue
                task = asyncio.create_task(self._dispatch(event, slots))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
                dispatched += 1
        finally:
            if self._tasks:
                Log.info(f"Waiting for {len(self._tasks)} running executions")
                await asyncio.gather(*self._tasks, return_exceptions=True)
            Log.info("Worker stopped")

    async def _try_next_event(self) -> UploadEvent | None:
        """Fetch the next event. Source errors are logged and retried on the next tick."""
        try:
            return await self._event_source.next_event()
        except Exception as exc:
            Log.warning(f"Event source error, will retry: {exc}")
            return None

    async def _dispatch(self, event: UploadEvent, slots: asyncio.Semaphore) -> None:
        try:
            try:
                await self._orchestrator.start(event)
            except ExecutionAlreadyRunningError as exc:
                Log.warning(f"Skipping upload event for {event.object_ref}: {exc}")
                await self._settle(self._event_source.reject(event, str(exc)), event)
            except Exception as exc:
                Log.exception(f"Upload event for {event.object_ref} could not be started")
                await self._settle(self._event_source.reject(event, str(exc)), event)
            else:
                await self._settle(self._event_source.ack(event), event)
        finally:
            slots.release()

    @staticmethod
    async def _settle(call: Awaitable[None], event: UploadEvent) -> None:
        """Ack or reject. A failure leaves the event to the source's redelivery."""
        try:
            await call
        except Exception:
            Log.exception(f"Could not settle upload event for {event.object_ref}")
