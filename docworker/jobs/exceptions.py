class JobServiceError(Exception):
    """Raised when the job service cannot be reached or answers with an error."""


class JobSubmissionError(JobServiceError):
    """Raised when a text detection job is not accepted."""
