import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import NoReturn, TypeVar

from docworker.config.settings import Settings
from docworker.database.base import BaseDocumentStore
from docworker.database.repositories.document_repository import DocumentRepository
from docworker.database.repositories.execution_repository import ExecutionRepository
from docworker.jobs.base import BaseJobService
from docworker.jobs.exceptions import JobServiceError
from docworker.jobs.factory import JobServiceFactory
from docworker.jobs.models import JobState, JobStatusReport
from docworker.logging.logger import Log
from docworker.notification.base import BaseNotifier
from docworker.notification.factory import NotifierFactory
from docworker.pipeline.exceptions import (
    ExecutionStoreError,
    ExhaustedRetriesError,
    PayloadConflictError,
    StageError,
    UpstreamJobFailedError,
)
from docworker.pipeline.execution_store import BaseExecutionStore, InMemoryExecutionStore
from docworker.pipeline.models import Execution, RetryPolicy, UploadEvent, document_id_for
from docworker.pipeline.pipeline import Pipeline, PipelineStage, PollingStage
from docworker.pipeline.states import ExecutionStatus, FailureReason
from docworker.pipeline.steps import (
    DocumentPersister,
    MetadataExtractor,
    ResultParser,
    TextDetectionPoller,
    TextDetectionSubmitter,
    ThumbnailGenerator,
)
from docworker.storage.base import BaseObjectStore
from docworker.storage.factory import ObjectStoreFactory

Sleep = Callable[[float], Awaitable[None]]
T = TypeVar("T")

TERMINAL_SAVE_ATTEMPTS = 3
TERMINAL_SAVE_DELAY_SECONDS = 1.0


class _StageFailed(Exception):
    """Internal signal: the execution has been marked failed, stop walking."""

    def __init__(self, reason: FailureReason) -> None:
        super().__init__(reason.value)
        self.reason = reason


class Orchestrator:
    """Drives one execution per upload event through the fixed stage sequence.

    Pipeline: metadata -> thumbnail -> submit -> poll (backoff loop) -> parse -> persist.
    Every stage output is merged into the payload and saved before the next
    stage starts. Any stage failure is terminal for the execution.
    """

    def __init__(
        self,
        pipeline: Pipeline,
        execution_store: BaseExecutionStore,
        notifier: BaseNotifier,
        retry_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        stage_timeout_seconds: float | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._execution_store = execution_store
        self._notifier = notifier
        self._retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._stage_timeout_seconds = stage_timeout_seconds

    async def start(self, event: UploadEvent) -> Execution:
        """Run the pipeline for ``event`` and return the terminal execution.

        Raises:
            ExecutionAlreadyRunningError: if the document already has a running execution.
        """
        execution = self._create_execution(event)
        await asyncio.to_thread(self._execution_store.create, execution)
        Log.info(
            f"Execution {execution.id} started for document {execution.document_id}",
            source_ref=event.object_ref,
        )

        current: PipelineStage | PollingStage | None = None
        try:
            for stage in self._pipeline.layout():
                current = stage
                execution.advance(stage.stage)
                await self._save(execution)
                if isinstance(stage, PollingStage):
                    await self._run_poll_loop(execution, stage)
                else:
                    await self._run_stage(execution, stage)
            execution.complete()
            Log.info(f"Execution {execution.id} completed for document {execution.document_id}")
        except _StageFailed as failed:
            Log.error(
                f"Execution {execution.id} failed at {execution.stage.value}: "
                f"{failed.reason.value}",
                detail=execution.failure_detail,
            )
        except ExecutionStoreError as exc:
            Log.exception(
                f"Execution {execution.id} could not be recorded at {execution.stage.value}"
            )
            execution.fail(FailureReason.EXECUTION_STORE_ERROR, str(exc))
        except Exception as exc:
            Log.exception(f"Execution {execution.id} aborted at {execution.stage.value}")
            reason = current.failure_reason if current else FailureReason.UNREADABLE_SOURCE
            execution.fail(reason, f"{type(exc).__name__}: {exc}")

        await self._save_terminal(execution)
        await self._notify(execution)
        return execution

    def _create_execution(self, event: UploadEvent) -> Execution:
        document_id = event.document_id or document_id_for(event.object_ref)
        uploaded_at = event.uploaded_at or datetime.now(UTC)
        return Execution(
            document_id=document_id,
            payload={
                "source_ref": event.object_ref,
                "document_id": document_id,
                "name": event.name,
                "owner": event.owner,
                "tags": list(event.tags),
                "uploaded_at": uploaded_at.isoformat(),
            },
        )

    async def _run_stage(self, execution: Execution, stage: PipelineStage) -> None:
        output = await self._invoke(
            execution, stage.failure_reason, stage.run(dict(execution.payload), execution.context())
        )
        self._merge(execution, output, stage.failure_reason)
        await self._save(execution)

    async def _run_poll_loop(self, execution: Execution, stage: PollingStage) -> None:
        policy = self._retry_policy
        execution.attempt = 0
        while True:
            execution.attempt += 1
            report = await self._poll_once(execution, stage)

            if report.state is JobState.SUCCEEDED:
                self._merge(execution, {"raw_result": report.raw_result or {}}, stage.failure_reason)
                await self._save(execution)
                Log.info(
                    f"Text detection finished for document {execution.document_id} "
                    f"after {execution.attempt} polls"
                )
                return

            if report.state is JobState.FAILED:
                self._fail(execution, UpstreamJobFailedError(report.reason or "job failed"))

            if execution.attempt >= policy.max_attempts:
                self._fail(
                    execution,
                    ExhaustedRetriesError(
                        f"Job still running after {execution.attempt} polls"
                    ),
                )

            delay = policy.delay_for(execution.attempt)
            await self._save(execution)
            Log.debug(
                f"Job not ready for document {execution.document_id}, "
                f"re-polling in {delay:.1f}s (attempt {execution.attempt}/{policy.max_attempts})"
            )
            await self._sleep(delay)

    async def _poll_once(self, execution: Execution, stage: PollingStage) -> JobStatusReport:
        try:
            return await self._invoke(
                execution,
                stage.failure_reason,
                stage.poll(dict(execution.payload), execution.context()),
                passthrough=(JobServiceError, TimeoutError),
            )
        except (JobServiceError, TimeoutError) as exc:
            Log.warning(
                f"Poll {execution.attempt} for document {execution.document_id} "
                f"could not reach the job service: {exc}"
            )
            return JobStatusReport.in_progress()

    async def _invoke(
        self,
        execution: Execution,
        default_reason: FailureReason,
        call: Awaitable[T],
        passthrough: tuple[type[Exception], ...] = (),
    ) -> T:
        try:
            if self._stage_timeout_seconds is None:
                return await call
            return await asyncio.wait_for(call, timeout=self._stage_timeout_seconds)
        except passthrough:
            raise
        except StageError as exc:
            self._fail(execution, exc)
        except TimeoutError:
            self._fail_with(
                execution,
                default_reason,
                f"{execution.stage.value} exceeded {self._stage_timeout_seconds}s",
            )
        except Exception as exc:
            Log.exception(f"Unexpected error in {execution.stage.value} for execution {execution.id}")
            self._fail_with(execution, default_reason, f"{type(exc).__name__}: {exc}")

    def _merge(
        self, execution: Execution, output: dict[str, object], reason: FailureReason
    ) -> None:
        try:
            execution.merge(output)
        except PayloadConflictError as exc:
            self._fail_with(execution, reason, str(exc))

    def _fail(self, execution: Execution, error: StageError) -> NoReturn:
        self._fail_with(execution, error.reason, str(error))

    @staticmethod
    def _fail_with(execution: Execution, reason: FailureReason, detail: str) -> NoReturn:
        execution.fail(reason, detail)
        raise _StageFailed(reason)

    async def _save(self, execution: Execution) -> None:
        try:
            await asyncio.to_thread(self._execution_store.save, execution)
        except Exception as exc:
            raise ExecutionStoreError(f"Cannot save execution {execution.id}: {exc}") from exc

    async def _save_terminal(self, execution: Execution) -> None:
        """Record the terminal state, falling back to a bare failed flag.

        The document must never be left with a running execution, or every
        later upload of it is rejected.
        """
        for attempt in range(1, TERMINAL_SAVE_ATTEMPTS + 1):
            try:
                await self._save(execution)
                return
            except ExecutionStoreError as exc:
                Log.warning(
                    f"Terminal save {attempt}/{TERMINAL_SAVE_ATTEMPTS} "
                    f"for execution {execution.id} failed: {exc}"
                )
            if attempt < TERMINAL_SAVE_ATTEMPTS:
                await self._sleep(TERMINAL_SAVE_DELAY_SECONDS)

        if execution.status is not ExecutionStatus.FAILED:
            execution.fail(FailureReason.EXECUTION_STORE_ERROR, "Terminal state could not be saved")
        reason = execution.failure_reason or FailureReason.EXECUTION_STORE_ERROR
        try:
            await asyncio.to_thread(
                self._execution_store.mark_failed,
                execution.id,
                reason,
                execution.failure_detail or reason.value,
            )
        except Exception:
            Log.exception(f"Execution {execution.id} is left running in the execution store")

    async def _notify(self, execution: Execution) -> None:
        try:
            await self._notifier.notify(execution)
        except Exception:
            Log.exception(f"Notifier failed for execution {execution.id}")


def build_pipeline(
    settings: Settings,
    object_store: BaseObjectStore,
    job_service: BaseJobService,
    document_store: BaseDocumentStore,
) -> Pipeline:
    """Wire the stage executors into the fixed pipeline layout."""
    return Pipeline(
        stages=[
            MetadataExtractor(object_store),
            ThumbnailGenerator(
                object_store,
                asset_location=settings.asset_location,
                width=settings.thumbnail_width,
            ),
            TextDetectionSubmitter(job_service),
            ResultParser(),
            DocumentPersister(document_store, default_owner=settings.default_owner),
        ],
        poll_stage=TextDetectionPoller(job_service),
    )


def build_orchestrator(settings: Settings) -> Orchestrator:
    """Build an Orchestrator with all configured adapters."""
    object_store = ObjectStoreFactory.create(settings)
    job_service = JobServiceFactory.create(settings, object_store)
    pipeline = build_pipeline(settings, object_store, job_service, DocumentRepository())
    execution_store: BaseExecutionStore
    if settings.execution_store.lower() == "memory":
        execution_store = InMemoryExecutionStore()
    else:
        execution_store = ExecutionRepository()
    return Orchestrator(
        pipeline=pipeline,
        execution_store=execution_store,
        notifier=NotifierFactory.create(settings),
        retry_policy=RetryPolicy.from_settings(settings),
        stage_timeout_seconds=settings.stage_timeout_seconds,
    )
