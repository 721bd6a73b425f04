from docworker.pipeline.states import FailureReason


class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""


class ExecutionAlreadyRunningError(PipelineError):
    """Raised when a document already has a running execution."""


class PayloadConflictError(PipelineError):
    """Raised when a stage tries to overwrite a payload field."""


class PipelineDefinitionError(PipelineError):
    """Raised when a pipeline is assembled with an invalid stage layout."""


class StageError(PipelineError):
    """Permanent failure of a single stage. Terminates the execution."""

    reason: FailureReason = FailureReason.UNREADABLE_SOURCE


class UnreadableSourceError(StageError):
    """Raised when the source object cannot be fetched or is empty."""

    reason = FailureReason.UNREADABLE_SOURCE


class UnsupportedFormatError(StageError):
    """Raised when a thumbnail cannot be rendered for the declared type."""

    reason = FailureReason.UNSUPPORTED_FORMAT


class StorageWriteError(StageError):
    """Raised when a derived asset cannot be written to the object store."""

    reason = FailureReason.STORAGE_WRITE_ERROR


class SubmissionError(StageError):
    """Raised when the job service rejects a text detection job."""

    reason = FailureReason.SUBMISSION_ERROR


class UpstreamJobFailedError(StageError):
    """Raised when the job service reports the detection job as failed."""

    reason = FailureReason.UPSTREAM_JOB_FAILED


class ExhaustedRetriesError(StageError):
    """Raised when the job is still running after the last allowed poll."""

    reason = FailureReason.EXHAUSTED_RETRIES


class MalformedResultError(StageError):
    """Raised when a detection result does not match the expected schema."""

    reason = FailureReason.MALFORMED_RESULT


class PersistenceError(StageError):
    """Raised when the document store rejects the final upsert."""

    reason = FailureReason.PERSISTENCE_ERROR


class ExecutionStoreError(PipelineError):
    """Raised when the execution store cannot record a transition."""
