import copy
import threading
from abc import ABC, abstractmethod

from docworker.pipeline.exceptions import ExecutionAlreadyRunningError
from docworker.pipeline.models import Execution
from docworker.pipeline.states import ExecutionStatus, FailureReason


class BaseExecutionStore(ABC):
    """Durable record of executions and their accumulated payload.

    Implementations are called from worker threads and must be thread safe.
    """

    @abstractmethod
    def create(self, execution: Execution) -> None:
        """Record a new running execution.

        Raises:
            ExecutionAlreadyRunningError: if the document already has one running.
        """

    @abstractmethod
    def save(self, execution: Execution) -> None:
        """Persist the current stage, payload, attempt and status."""

    @abstractmethod
    def mark_failed(self, execution_id: str, reason: FailureReason, detail: str) -> None:
        """Flip a stored execution to failed without touching its payload.

        Used when a full ``save`` of the terminal state did not go through, so
        the document is not left with a running execution forever.
        """

    @abstractmethod
    def get(self, execution_id: str) -> Execution | None:
        """Load a snapshot of an execution."""


class InMemoryExecutionStore(BaseExecutionStore):
    """Single-process execution store. Keeps snapshots, not live objects."""

    def __init__(self) -> None:
        self._executions: dict[str, Execution] = {}
        self._running: dict[str, str] = {}
        self._lock = threading.Lock()

    def create(self, execution: Execution) -> None:
        with self._lock:
            running_id = self._running.get(execution.document_id)
            if running_id is not None:
                raise ExecutionAlreadyRunningError(
                    f"Document {execution.document_id} already has running execution {running_id}"
                )
            self._running[execution.document_id] = execution.id
            self._executions[execution.id] = copy.deepcopy(execution)

    def save(self, execution: Execution) -> None:
        with self._lock:
            if execution.id not in self._executions:
                raise KeyError(f"Unknown execution {execution.id}")
            self._executions[execution.id] = copy.deepcopy(execution)
            if execution.status is not ExecutionStatus.RUNNING:
                self._release(execution.document_id, execution.id)

    def mark_failed(self, execution_id: str, reason: FailureReason, detail: str) -> None:
        with self._lock:
            stored = self._executions.get(execution_id)
            if stored is None:
                raise KeyError(f"Unknown execution {execution_id}")
            stored.fail(reason, detail)
            self._release(stored.document_id, execution_id)

    def get(self, execution_id: str) -> Execution | None:
        with self._lock:
            execution = self._executions.get(execution_id)
            return copy.deepcopy(execution) if execution is not None else None

    def running_for(self, document_id: str) -> str | None:
        return self._running.get(document_id)

    def _release(self, document_id: str, execution_id: str) -> None:
        if self._running.get(document_id) == execution_id:
            del self._running[document_id]
