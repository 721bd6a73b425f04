from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import ClassVar

from docworker.jobs.models import JobStatusReport
from docworker.pipeline.exceptions import PipelineDefinitionError
from docworker.pipeline.models import ExecutionContext
from docworker.pipeline.states import STAGE_ORDER, FailureReason, Stage

Payload = Mapping[str, object]


class PipelineStage(ABC):
    """A single-shot stage: one call, one output mapping or one StageError."""

    stage: ClassVar[Stage]
    failure_reason: ClassVar[FailureReason]

    @abstractmethod
    async def run(self, payload: Payload, context: ExecutionContext) -> dict[str, object]:
        raise NotImplementedError


class PollingStage(ABC):
    """The retry-capable stage. Each call is one idempotent status query."""

    stage: ClassVar[Stage] = Stage.TEXT_DETECTION_POLL
    failure_reason: ClassVar[FailureReason] = FailureReason.UPSTREAM_JOB_FAILED

    @abstractmethod
    async def poll(self, payload: Payload, context: ExecutionContext) -> JobStatusReport:
        raise NotImplementedError


class Pipeline:
    """Ordered stage layout driven by the orchestrator.

    The single-shot stages must cover every working state exactly once and
    in the fixed order; the polling stage is slotted into its own state.
    """

    def __init__(self, stages: Sequence[PipelineStage], poll_stage: PollingStage) -> None:
        expected = [
            s for s in STAGE_ORDER
            if s not in (Stage.INIT, Stage.COMPLETED, poll_stage.stage)
        ]
        actual = [s.stage for s in stages]
        if actual != expected:
            raise PipelineDefinitionError(
                f"Stages must be {[s.value for s in expected]}, got {[s.value for s in actual]}"
            )
        self._stages = list(stages)
        self._poll_stage = poll_stage

    def layout(self) -> list[PipelineStage | PollingStage]:
        """All stages in execution order, the polling stage included."""
        by_state: dict[Stage, PipelineStage | PollingStage] = {s.stage: s for s in self._stages}
        by_state[self._poll_stage.stage] = self._poll_stage
        return [by_state[s] for s in STAGE_ORDER if s in by_state]
