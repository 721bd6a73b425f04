"""In-process text detection service.

Reads the object, extracts the native text layer with the configured PDF
extractor, and answers polls with a Textract-shaped block list. Useful for
local development and tests where no AWS account is available.
"""

import uuid

from docworker.jobs.base import BaseJobService
from docworker.jobs.exceptions import JobServiceError, JobSubmissionError
from docworker.jobs.models import JobStatusReport
from docworker.pdf.base import BasePdfExtractor
from docworker.pdf.exceptions import PdfExtractionError
from docworker.storage.base import BaseObjectStore
from docworker.storage.exceptions import ObjectStoreError

NATIVE_TEXT_CONFIDENCE = 100.0


def build_blocks(pages: list[str]) -> list[dict[str, object]]:
    """Lay page texts out as PAGE and LINE blocks."""
    blocks: list[dict[str, object]] = []
    for page_number, text in enumerate(pages, start=1):
        page_id = f"page-{page_number}"
        blocks.append({"BlockType": "PAGE", "Id": page_id, "Page": page_number})
        for line_number, line in enumerate(
            (line.strip() for line in text.splitlines() if line.strip()), start=1
        ):
            blocks.append(
                {
                    "BlockType": "LINE",
                    "Id": f"{page_id}-line-{line_number}",
                    "Page": page_number,
                    "Text": line,
                    "Confidence": NATIVE_TEXT_CONFIDENCE,
                }
            )
    return blocks


class LocalTextDetectionService(BaseJobService):
    """Detects text synchronously at submit time; every poll is terminal."""

    def __init__(self, object_store: BaseObjectStore, pdf_extractor: BasePdfExtractor) -> None:
        self._object_store = object_store
        self._pdf_extractor = pdf_extractor
        self._jobs: dict[str, JobStatusReport] = {}

    def submit(self, object_ref: str) -> str:
        try:
            stored = self._object_store.get(object_ref)
        except ObjectStoreError as exc:
            raise JobSubmissionError(f"Cannot read {object_ref}: {exc}") from exc

        job_id = uuid.uuid4().hex
        try:
            pages = self._pdf_extractor.extract_pages(stored.body)
        except PdfExtractionError as exc:
            self._jobs[job_id] = JobStatusReport.failed(str(exc))
        else:
            self._jobs[job_id] = JobStatusReport.succeeded(
                {
                    "Blocks": build_blocks(pages),
                    "DocumentMetadata": {"Pages": len(pages)},
                    "Warnings": [],
                }
            )
        return job_id

    def poll(self, job_id: str) -> JobStatusReport:
        report = self._jobs.get(job_id)
        if report is None:
            raise JobServiceError(f"Unknown job {job_id}")
        return report
