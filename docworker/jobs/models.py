from dataclasses import dataclass
from enum import Enum


class JobState(str, Enum):
    """Status of an external text detection job as seen by one poll."""

    IN_PROGRESS = "InProgress"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


@dataclass(frozen=True)
class JobStatusReport:
    """Outcome of a single poll against the job service."""

    state: JobState
    raw_result: dict[str, object] | None = None
    reason: str = ""

    @classmethod
    def in_progress(cls) -> "JobStatusReport":
        return cls(state=JobState.IN_PROGRESS)

    @classmethod
    def succeeded(cls, raw_result: dict[str, object]) -> "JobStatusReport":
        return cls(state=JobState.SUCCEEDED, raw_result=raw_result)

    @classmethod
    def failed(cls, reason: str) -> "JobStatusReport":
        return cls(state=JobState.FAILED, reason=reason)
