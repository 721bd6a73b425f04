from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import psycopg
import pytest
from psycopg.types.json import Jsonb

from docworker.database.exceptions import DocumentStoreError
from docworker.database.models import DocumentRecord
from docworker.database.repositories.document_repository import DocumentRepository


def _make_fields() -> dict[str, object]:
    return {
        "source_ref": "s3://uploads/report.pdf",
        "thumbnail_ref": "s3://assets/thumbnails/doc-1.png",
        "text": "Invoice 42",
        "uploaded_at": datetime(2024, 5, 1, tzinfo=UTC),
        "owner": "alice",
        "tags": ("finance",),
        "name": "report.pdf",
        "file_details": {"pages": 1},
        "block_confidences": None,
    }


def _make_row() -> dict:
    return {
        "document_id": "doc-1",
        "source_ref": "s3://uploads/report.pdf",
        "thumbnail_ref": "s3://assets/thumbnails/doc-1.png",
        "text": "Invoice 42",
        "uploaded_at": datetime(2024, 5, 1, tzinfo=UTC),
        "owner": "alice",
        "tags": ["finance"],
        "name": "report.pdf",
        "file_details": {"pages": 1},
        "block_confidences": None,
        "created_at": datetime(2024, 5, 1, tzinfo=UTC),
        "updated_at": datetime(2024, 5, 1, tzinfo=UTC),
    }


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


class TestUpsert:
    @patch("docworker.database.repositories.document_repository.get_connection")
    def test_executes_single_upsert_and_commits(self, mock_get_conn: MagicMock) -> None:
        mock_conn, _cursor = _mock_connection(mock_get_conn)

        DocumentRepository().upsert("doc-1", _make_fields())

        mock_conn.execute.assert_called_once()
        sql, params = mock_conn.execute.call_args.args
        assert "ON CONFLICT (document_id) DO UPDATE" in sql
        assert "IS DISTINCT FROM" in sql
        assert params[0] == "doc-1"
        assert params[1] == "s3://uploads/report.pdf"
        mock_conn.commit.assert_called_once()

    @patch("docworker.database.repositories.document_repository.get_connection")
    def test_normalizes_tags_and_json_columns(self, mock_get_conn: MagicMock) -> None:
        mock_conn, _cursor = _mock_connection(mock_get_conn)

        DocumentRepository().upsert("doc-1", _make_fields())

        params = mock_conn.execute.call_args.args[1]
        assert params[6] == ["finance"]
        assert isinstance(params[8], Jsonb)
        assert params[8].obj == {"pages": 1}
        assert params[9].obj == []

    @patch("docworker.database.repositories.document_repository.get_connection")
    def test_missing_source_ref_raises(self, mock_get_conn: MagicMock) -> None:
        fields = _make_fields() | {"source_ref": None}

        with pytest.raises(DocumentStoreError, match="no source_ref"):
            DocumentRepository().upsert("doc-1", fields)

        mock_get_conn.assert_not_called()

    @patch("docworker.database.repositories.document_repository.get_connection")
    def test_database_error_raises_store_error(self, mock_get_conn: MagicMock) -> None:
        mock_conn, _cursor = _mock_connection(mock_get_conn)
        mock_conn.execute.side_effect = psycopg.OperationalError("server closed the connection")

        with pytest.raises(DocumentStoreError, match="Upsert failed for document doc-1"):
            DocumentRepository().upsert("doc-1", _make_fields())


class TestFindById:
    @patch("docworker.database.repositories.document_repository.get_connection")
    def test_returns_record_when_found(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row()

        result = DocumentRepository().find_by_id("doc-1")

        assert isinstance(result, DocumentRecord)
        assert result.document_id == "doc-1"
        assert result.tags == ["finance"]
        assert result.block_confidences == []

    @patch("docworker.database.repositories.document_repository.get_connection")
    def test_returns_none_when_missing(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert DocumentRepository().find_by_id("missing") is None
