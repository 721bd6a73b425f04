from typing import Any

import psycopg
from psycopg.rows import dict_row

from docworker.database.connection import get_connection
from docworker.pipeline.models import UploadEvent


class UploadEventRepository:
    """Database operations for the upload_events table."""

    def claim_next_event(self, conn: psycopg.Connection[Any]) -> UploadEvent | None:
        """Claim the oldest pending event using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, object_ref, document_id, name, owner, tags, created_at
                FROM upload_events
                WHERE status = 'pending'
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """
            )
            row = cur.fetchone()

        if row is None:
            return None

        conn.execute(
            """
            UPDATE upload_events
            SET status = 'claimed', claimed_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        return UploadEvent(
            object_ref=row["object_ref"],
            document_id=row["document_id"],
            name=row["name"],
            owner=row["owner"],
            tags=tuple(row["tags"] or ()),
            uploaded_at=row["created_at"],
            receipt=str(row["id"]),
        )

    def mark_done(self, event_id: int) -> None:
        """Mark an event as handed over to the orchestrator."""
        with get_connection() as conn:
            conn.execute(
                "UPDATE upload_events SET status = 'done' WHERE id = %s",
                (event_id,),
            )
            conn.commit()

    def mark_skipped(self, event_id: int, reason: str) -> None:
        """Mark an event that was not dispatched, keeping the reason."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE upload_events
                SET status = 'skipped', error_message = %s
                WHERE id = %s
                """,
                (reason, event_id),
            )
            conn.commit()
