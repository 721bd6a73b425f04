from enum import Enum


class Stage(str, Enum):
    """Execution states, in the fixed order the orchestrator walks them."""

    INIT = "Init"
    METADATA_EXTRACTION = "MetadataExtraction"
    THUMBNAIL_GENERATION = "ThumbnailGeneration"
    TEXT_DETECTION_SUBMIT = "TextDetectionSubmit"
    TEXT_DETECTION_POLL = "TextDetectionPoll"
    RESULT_PARSING = "ResultParsing"
    PERSISTENCE = "Persistence"
    COMPLETED = "Completed"


STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureReason(str, Enum):
    UNREADABLE_SOURCE = "UnreadableSource"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    STORAGE_WRITE_ERROR = "StorageWriteError"
    SUBMISSION_ERROR = "SubmissionError"
    UPSTREAM_JOB_FAILED = "UpstreamJobFailed"
    EXHAUSTED_RETRIES = "ExhaustedRetries"
    MALFORMED_RESULT = "MalformedResult"
    PERSISTENCE_ERROR = "PersistenceError"
    EXECUTION_STORE_ERROR = "ExecutionStoreError"

