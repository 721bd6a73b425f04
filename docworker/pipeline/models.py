import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from docworker.config.settings import Settings
from docworker.pipeline.exceptions import PayloadConflictError
from docworker.pipeline.states import ExecutionStatus, FailureReason, Stage


def _utcnow() -> datetime:
    return datetime.now(UTC)


def document_id_for(object_ref: str) -> str:
    """Stable document id for an upload event that did not carry one.

    Redeliveries of the same object map to the same document.
    """
    return uuid.uuid5(uuid.NAMESPACE_URL, object_ref).hex


@dataclass(frozen=True)
class UploadEvent:
    """Notification that an object landed in the upload location."""

    object_ref: str
    document_id: str | None = None
    name: str | None = None
    owner: str | None = None
    tags: tuple[str, ...] = ()
    uploaded_at: datetime | None = None
    receipt: str | None = None


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff configuration for the text detection poll loop."""

    max_attempts: int = 100
    base_interval: float = 5.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_interval < 0:
            raise ValueError("base_interval must not be negative")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be at least 1")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.poll_max_attempts,
            base_interval=settings.poll_base_interval_seconds,
            backoff_multiplier=settings.poll_backoff_multiplier,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given 1-based poll attempt. Uncapped."""
        if attempt < 1:
            raise ValueError("attempt is 1-based")
        return self.base_interval * self.backoff_multiplier ** (attempt - 1)


@dataclass(frozen=True)
class ExecutionContext:
    """Read-only view of the execution handed to every stage executor."""

    execution_id: str
    document_id: str
    attempt: int = 0


@dataclass
class Execution:
    """One run of the pipeline for a single uploaded document."""

    document_id: str
    payload: dict[str, object]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    stage: Stage = Stage.INIT
    status: ExecutionStatus = ExecutionStatus.RUNNING
    attempt: int = 0
    failure_reason: FailureReason | None = None
    failure_detail: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def context(self) -> ExecutionContext:
        return ExecutionContext(
            execution_id=self.id,
            document_id=self.document_id,
            attempt=self.attempt,
        )

    def merge(self, fields: Mapping[str, object]) -> None:
        """Add stage output to the payload.

        Raises:
            PayloadConflictError: if a field already present would change value.
        """
        for key, value in fields.items():
            if key in self.payload and self.payload[key] != value:
                raise PayloadConflictError(
                    f"Payload field '{key}' already written for execution {self.id}"
                )
        for key, value in fields.items():
            self.payload.setdefault(key, value)
        self.touch()

    def advance(self, stage: Stage) -> None:
        self.stage = stage
        self.touch()

    def complete(self) -> None:
        self.stage = Stage.COMPLETED
        self.status = ExecutionStatus.COMPLETED
        self.touch()

    def fail(self, reason: FailureReason, detail: str) -> None:
        """Mark the execution failed. The stage stays where the failure happened."""
        self.status = ExecutionStatus.FAILED
        self.failure_reason = reason
        self.failure_detail = detail
        self.touch()

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def summary(self) -> dict[str, object]:
        """JSON-ready outcome used by notifiers."""
        return {
            "execution_id": self.id,
            "document_id": self.document_id,
            "status": self.status.value,
            "stage": self.stage.value,
            "attempt": self.attempt,
            "failure_reason": self.failure_reason.value if self.failure_reason else None,
            "failure_detail": self.failure_detail,
            "thumbnail_ref": self.payload.get("thumbnail_ref"),
            "updated_at": self.updated_at.isoformat(),
        }
