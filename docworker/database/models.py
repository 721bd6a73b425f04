from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class DocumentRecord:
    """Represents a row from the documents table."""

    document_id: str
    source_ref: str
    thumbnail_ref: str | None
    text: str
    uploaded_at: datetime | None
    owner: str | None
    tags: list[str] = field(default_factory=list)
    name: str | None = None
    file_details: dict[str, object] = field(default_factory=dict)
    block_confidences: list[dict[str, object]] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class UploadEventRecord:
    """Represents a row from the upload_events table."""

    id: int
    object_ref: str
    status: str
    document_id: str | None = None
    name: str | None = None
    owner: str | None = None
    tags: list[str] = field(default_factory=list)
    created_at: datetime | None = None
