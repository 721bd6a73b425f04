from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from docworker.jobs.base import BaseJobService
from docworker.jobs.exceptions import JobServiceError, JobSubmissionError
from docworker.jobs.models import JobStatusReport
from docworker.logging.logger import Log
from docworker.storage.exceptions import ObjectStoreError
from docworker.storage.models import ObjectRef

_SUCCEEDED_STATUSES = frozenset({"SUCCEEDED", "PARTIAL_SUCCESS"})


class TextractJobService(BaseJobService):
    """Text detection through the AWS Textract asynchronous API."""

    MAX_RESULTS = 1000

    def __init__(self, client: Any) -> None:
        self._client = client

    def submit(self, object_ref: str) -> str:
        try:
            location = ObjectRef.parse(object_ref)
        except ObjectStoreError as exc:
            raise JobSubmissionError(str(exc)) from exc
        if location.scheme != "s3":
            raise JobSubmissionError(f"Textract can only read S3 objects, got '{object_ref}'")
        try:
            response = self._client.start_document_text_detection(
                DocumentLocation={
                    "S3Object": {"Bucket": location.container, "Name": location.key}
                }
            )
        except (ClientError, BotoCoreError) as exc:
            raise JobSubmissionError(f"Textract rejected {object_ref}: {exc}") from exc
        job_id = response.get("JobId")
        if not job_id:
            raise JobSubmissionError(f"Textract returned no JobId for {object_ref}")
        Log.info(f"Textract job {job_id} started for {object_ref}")
        return str(job_id)

    def poll(self, job_id: str) -> JobStatusReport:
        response = self._get_page(job_id, next_token=None)
        status = response.get("JobStatus")
        if status == "IN_PROGRESS":
            return JobStatusReport.in_progress()
        if status == "FAILED":
            return JobStatusReport.failed(str(response.get("StatusMessage") or "Textract job failed"))
        if status not in _SUCCEEDED_STATUSES:
            raise JobServiceError(f"Unexpected Textract status '{status}' for job {job_id}")

        blocks: list[object] = list(response.get("Blocks") or [])
        warnings: list[object] = list(response.get("Warnings") or [])
        next_token = response.get("NextToken")
        while next_token:
            page = self._get_page(job_id, next_token=next_token)
            blocks.extend(page.get("Blocks") or [])
            warnings.extend(page.get("Warnings") or [])
            next_token = page.get("NextToken")

        if status == "PARTIAL_SUCCESS":
            Log.warning(f"Textract job {job_id} partially succeeded: {len(warnings)} warnings")
        return JobStatusReport.succeeded(
            {
                "Blocks": blocks,
                "DocumentMetadata": dict(response.get("DocumentMetadata") or {}),
                "Warnings": warnings,
            }
        )

    def _get_page(self, job_id: str, next_token: str | None) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"JobId": job_id, "MaxResults": self.MAX_RESULTS}
        if next_token:
            kwargs["NextToken"] = next_token
        try:
            response: dict[str, Any] = self._client.get_document_text_detection(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise JobServiceError(f"Textract status query failed for job {job_id}: {exc}") from exc
        return response
