from unittest.mock import MagicMock, patch

from docworker.events.postgres_source import PostgresEventSource
from docworker.pipeline.models import UploadEvent


class TestPostgresEventSource:
    @patch("docworker.events.postgres_source.get_connection")
    async def test_next_event_claims_with_pooled_connection(
        self, mock_get_conn: MagicMock
    ) -> None:
        mock_conn = MagicMock()
        mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
        mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
        repository = MagicMock()
        event = UploadEvent(object_ref="s3://uploads/a.pdf", receipt="3")
        repository.claim_next_event.return_value = event

        result = await PostgresEventSource(repository).next_event()

        assert result is event
        repository.claim_next_event.assert_called_once_with(mock_conn)

    async def test_ack_marks_done(self) -> None:
        repository = MagicMock()

        await PostgresEventSource(repository).ack(
            UploadEvent(object_ref="s3://uploads/a.pdf", receipt="3")
        )

        repository.mark_done.assert_called_once_with(3)

    async def test_reject_marks_skipped(self) -> None:
        repository = MagicMock()

        await PostgresEventSource(repository).reject(
            UploadEvent(object_ref="s3://uploads/a.pdf", receipt="3"), "already running"
        )

        repository.mark_skipped.assert_called_once_with(3, "already running")

    async def test_event_without_receipt_is_ignored(self) -> None:
        repository = MagicMock()

        await PostgresEventSource(repository).ack(UploadEvent(object_ref="s3://uploads/a.pdf"))

        repository.mark_done.assert_not_called()
