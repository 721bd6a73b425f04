from abc import ABC, abstractmethod

from docworker.jobs.models import JobStatusReport


class BaseJobService(ABC):
    """Contract for asynchronous text detection services."""

    @abstractmethod
    def submit(self, object_ref: str) -> str:
        """Start a text detection job for the object and return its job id.

        Raises:
            JobSubmissionError: on any non-success answer from the service.
        """

    @abstractmethod
    def poll(self, job_id: str) -> JobStatusReport:
        """Query the job once. Never sleeps or retries.

        Raises:
            JobServiceError: if the status cannot be obtained.
        """
