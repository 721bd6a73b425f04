from collections.abc import Mapping
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docworker.database.base import BaseDocumentStore
from docworker.database.connection import get_connection
from docworker.database.exceptions import DocumentStoreError
from docworker.database.models import DocumentRecord

_CONTENT_COLUMNS = (
    "source_ref",
    "thumbnail_ref",
    "text",
    "uploaded_at",
    "owner",
    "tags",
    "name",
    "file_details",
    "block_confidences",
)
_JSON_COLUMNS = frozenset({"file_details", "block_confidences"})

_UPSERT_SQL = f"""
    INSERT INTO documents (document_id, {", ".join(_CONTENT_COLUMNS)}, created_at, updated_at)
    VALUES (%s, {", ".join(["%s"] * len(_CONTENT_COLUMNS))}, NOW(), NOW())
    ON CONFLICT (document_id) DO UPDATE
    SET {", ".join(f"{c} = EXCLUDED.{c}" for c in _CONTENT_COLUMNS)},
        updated_at = NOW()
    WHERE ({", ".join(f"documents.{c}" for c in _CONTENT_COLUMNS)})
          IS DISTINCT FROM
          ({", ".join(f"EXCLUDED.{c}" for c in _CONTENT_COLUMNS)})
"""


class DocumentRepository(BaseDocumentStore):
    """Database operations for the documents table."""

    def upsert(self, document_id: str, fields: Mapping[str, object]) -> None:
        """Insert or update a document in a single statement.

        Rows whose content is unchanged are left alone, so repeating an
        identical upsert does not even bump ``updated_at``.

        Raises:
            DocumentStoreError: on missing source_ref or any database error.
        """
        if not fields.get("source_ref"):
            raise DocumentStoreError(f"Document {document_id} has no source_ref")
        params = (document_id, *(self._column_value(c, fields.get(c)) for c in _CONTENT_COLUMNS))
        try:
            with get_connection() as conn:
                conn.execute(_UPSERT_SQL, params)
                conn.commit()
        except psycopg.Error as exc:
            raise DocumentStoreError(f"Upsert failed for document {document_id}: {exc}") from exc

    def find_by_id(self, document_id: str) -> DocumentRecord | None:
        """Find a document by ID. Useful for tests."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT document_id, source_ref, thumbnail_ref, text, uploaded_at,
                           owner, tags, name, file_details, block_confidences,
                           created_at, updated_at
                    FROM documents
                    WHERE document_id = %s
                    """,
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return DocumentRecord(
            document_id=row["document_id"],
            source_ref=row["source_ref"],
            thumbnail_ref=row["thumbnail_ref"],
            text=row["text"],
            uploaded_at=row["uploaded_at"],
            owner=row["owner"],
            tags=list(row["tags"] or []),
            name=row["name"],
            file_details=row["file_details"] or {},
            block_confidences=row["block_confidences"] or [],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _column_value(column: str, value: object) -> Any:
        if column in _JSON_COLUMNS:
            return Jsonb(value if value is not None else ({} if column == "file_details" else []))
        if column == "tags":
            return list(value) if isinstance(value, (list, tuple)) else []
        return value
