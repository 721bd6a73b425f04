import asyncio
import hashlib
import mimetypes
from datetime import UTC, datetime

from docworker.database.base import BaseDocumentStore
from docworker.database.exceptions import DocumentStoreError
from docworker.jobs.base import BaseJobService
from docworker.jobs.exceptions import JobServiceError
from docworker.jobs.models import JobStatusReport
from docworker.logging.logger import Log
from docworker.pdf.exceptions import PdfRenderError
from docworker.pdf.rendering import PDF_CONTENT_TYPE, count_pages, is_renderable, render_first_page
from docworker.pipeline.detection_result import consolidate
from docworker.pipeline.exceptions import (
    PersistenceError,
    StorageWriteError,
    SubmissionError,
    UnreadableSourceError,
    UnsupportedFormatError,
    UpstreamJobFailedError,
)
from docworker.pipeline.models import ExecutionContext
from docworker.pipeline.pipeline import Payload, PipelineStage, PollingStage
from docworker.pipeline.states import FailureReason, Stage
from docworker.storage.base import BaseObjectStore
from docworker.storage.exceptions import ObjectStoreError
from docworker.storage.models import ObjectRef, StoredObject

DEFAULT_CONTENT_TYPE = "application/octet-stream"
# Types stores assign when the uploader declared nothing useful.
GENERIC_CONTENT_TYPES = frozenset(
    {DEFAULT_CONTENT_TYPE, "binary/octet-stream", "application/unknown", "application/x-download"}
)
DEFAULT_ENCODING = "7bit"
THUMBNAIL_CONTENT_TYPE = "image/png"


def _require_str(payload: Payload, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise KeyError(f"Payload field '{key}' is missing")
    return value


async def _read_source(object_store: BaseObjectStore, source_ref: str) -> StoredObject:
    try:
        stored = await asyncio.to_thread(object_store.get, source_ref)
    except ObjectStoreError as exc:
        raise UnreadableSourceError(f"Cannot read source {source_ref}: {exc}") from exc
    if not stored.body:
        raise UnreadableSourceError(f"Source {source_ref} is empty")
    return stored


class MetadataExtractor(PipelineStage):
    stage = Stage.METADATA_EXTRACTION
    failure_reason = FailureReason.UNREADABLE_SOURCE

    def __init__(self, object_store: BaseObjectStore) -> None:
        self._object_store = object_store

    async def run(self, payload: Payload, context: ExecutionContext) -> dict[str, object]:
        source_ref = _require_str(payload, "source_ref")
        stored = await _read_source(self._object_store, source_ref)
        file_name = stored.metadata.get("filename") or ObjectRef.parse(source_ref).basename
        content_type = self._resolve_content_type(stored, file_name)
        pages = None
        if content_type == PDF_CONTENT_TYPE:
            pages = await asyncio.to_thread(count_pages, stored.body)
        Log.info(
            f"Read {len(stored.body)} bytes of {content_type} for document {context.document_id}",
            pages=pages,
        )
        return {
            "content_type": content_type,
            "encoding": stored.metadata.get("encoding") or DEFAULT_ENCODING,
            "file_name": file_name,
            "size_bytes": len(stored.body),
            "sha256": hashlib.sha256(stored.body).hexdigest(),
            "pages": pages,
        }

    @staticmethod
    def _resolve_content_type(stored: StoredObject, file_name: str) -> str:
        declared = (stored.content_type or "").split(";", 1)[0].strip().lower()
        if declared and declared not in GENERIC_CONTENT_TYPES:
            return declared
        if stored.body.startswith(b"%PDF"):
            return PDF_CONTENT_TYPE
        guessed, _ = mimetypes.guess_type(file_name)
        return guessed or DEFAULT_CONTENT_TYPE


class ThumbnailGenerator(PipelineStage):
    stage = Stage.THUMBNAIL_GENERATION
    failure_reason = FailureReason.UNSUPPORTED_FORMAT

    def __init__(self, object_store: BaseObjectStore, asset_location: str, width: int) -> None:
        self._object_store = object_store
        self._asset_location = asset_location
        self._width = width

    async def run(self, payload: Payload, context: ExecutionContext) -> dict[str, object]:
        source_ref = _require_str(payload, "source_ref")
        content_type = str(payload.get("content_type") or "")
        if not is_renderable(content_type):
            raise UnsupportedFormatError(f"No thumbnail renderer for '{content_type}'")

        stored = await _read_source(self._object_store, source_ref)
        try:
            image = await asyncio.to_thread(
                render_first_page, stored.body, content_type, self._width
            )
        except PdfRenderError as exc:
            raise UnsupportedFormatError(str(exc)) from exc

        target = ObjectRef.parse(source_ref).sibling(
            self._asset_location, f"thumbnails/{context.document_id}.png"
        )
        try:
            thumbnail_ref = await asyncio.to_thread(
                self._object_store.put, str(target), image, THUMBNAIL_CONTENT_TYPE
            )
        except ObjectStoreError as exc:
            raise StorageWriteError(f"Cannot write thumbnail {target}: {exc}") from exc
        Log.info(f"Thumbnail for document {context.document_id} written to {thumbnail_ref}")
        return {"thumbnail_ref": thumbnail_ref}


class TextDetectionSubmitter(PipelineStage):
    stage = Stage.TEXT_DETECTION_SUBMIT
    failure_reason = FailureReason.SUBMISSION_ERROR

    def __init__(self, job_service: BaseJobService) -> None:
        self._job_service = job_service

    async def run(self, payload: Payload, context: ExecutionContext) -> dict[str, object]:
        source_ref = _require_str(payload, "source_ref")
        try:
            job_id = await asyncio.to_thread(self._job_service.submit, source_ref)
        except JobServiceError as exc:
            raise SubmissionError(str(exc)) from exc
        Log.info(f"Text detection job {job_id} submitted for document {context.document_id}")
        return {"job_id": job_id}


class TextDetectionPoller(PollingStage):
    """One status query per call. Delay and attempt bookkeeping live in the orchestrator."""

    def __init__(self, job_service: BaseJobService) -> None:
        self._job_service = job_service

    async def poll(self, payload: Payload, context: ExecutionContext) -> JobStatusReport:
        job_id = payload.get("job_id")
        if not isinstance(job_id, str) or not job_id:
            raise UpstreamJobFailedError("No text detection job id in payload")
        report = await asyncio.to_thread(self._job_service.poll, job_id)
        Log.debug(
            f"Job {job_id} is {report.state.value} (attempt {context.attempt})",
            document_id=context.document_id,
        )
        return report


class ResultParser(PipelineStage):
    stage = Stage.RESULT_PARSING
    failure_reason = FailureReason.MALFORMED_RESULT

    async def run(self, payload: Payload, context: ExecutionContext) -> dict[str, object]:
        result = consolidate(payload.get("raw_result"))
        Log.info(
            f"Consolidated {result['line_count']} lines for document {context.document_id}",
            mean_confidence=result["mean_confidence"],
        )
        return result


class DocumentPersister(PipelineStage):
    stage = Stage.PERSISTENCE
    failure_reason = FailureReason.PERSISTENCE_ERROR

    FILE_DETAIL_FIELDS = ("content_type", "encoding", "file_name", "pages", "size_bytes", "sha256")

    def __init__(self, document_store: BaseDocumentStore, default_owner: str = "") -> None:
        self._document_store = document_store
        self._default_owner = default_owner

    async def run(self, payload: Payload, context: ExecutionContext) -> dict[str, object]:
        fields = self.build_fields(payload)
        try:
            await asyncio.to_thread(self._document_store.upsert, context.document_id, fields)
        except DocumentStoreError as exc:
            raise PersistenceError(str(exc)) from exc
        Log.info(f"Document {context.document_id} persisted")
        return {"persisted_at": datetime.now(UTC).isoformat()}

    def build_fields(self, payload: Payload) -> dict[str, object]:
        """Map the accumulated payload onto document columns."""
        uploaded_at = payload.get("uploaded_at")
        tags = payload.get("tags")
        return {
            "source_ref": payload.get("source_ref"),
            "thumbnail_ref": payload.get("thumbnail_ref"),
            "text": payload.get("text") or "",
            "uploaded_at": (
                datetime.fromisoformat(uploaded_at) if isinstance(uploaded_at, str) else None
            ),
            "owner": payload.get("owner") or self._default_owner or None,
            "tags": list(tags) if isinstance(tags, (list, tuple)) else [],
            "name": payload.get("name") or payload.get("file_name"),
            "file_details": {k: payload.get(k) for k in self.FILE_DETAIL_FIELDS},
            "block_confidences": payload.get("block_confidences") or [],
        }
