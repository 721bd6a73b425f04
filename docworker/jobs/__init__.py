from docworker.jobs.base import BaseJobService
from docworker.jobs.factory import JobServiceFactory
from docworker.jobs.models import JobState, JobStatusReport

__all__ = ["BaseJobService", "JobServiceFactory", "JobState", "JobStatusReport"]
