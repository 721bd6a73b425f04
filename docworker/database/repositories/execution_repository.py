from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docworker.database.connection import get_connection
from docworker.pipeline.exceptions import ExecutionAlreadyRunningError
from docworker.pipeline.execution_store import BaseExecutionStore
from docworker.pipeline.models import Execution
from docworker.pipeline.states import ExecutionStatus, FailureReason, Stage


class ExecutionRepository(BaseExecutionStore):
    """Database operations for the pipeline_executions table.

    A partial unique index on (document_id) WHERE status = 'running' keeps
    concurrent workers from running the same document twice.
    """

    def create(self, execution: Execution) -> None:
        try:
            with get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO pipeline_executions
                    (id, document_id, stage, status, payload, attempt,
                     failure_reason, failure_detail, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    self._row_params(execution),
                )
                conn.commit()
        except psycopg.errors.UniqueViolation as exc:
            raise ExecutionAlreadyRunningError(
                f"Document {execution.document_id} already has a running execution"
            ) from exc

    def save(self, execution: Execution) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE pipeline_executions
                SET stage = %s, status = %s, payload = %s, attempt = %s,
                    failure_reason = %s, failure_detail = %s, updated_at = %s
                WHERE id = %s
                """,
                (
                    execution.stage.value,
                    execution.status.value,
                    Jsonb(execution.payload),
                    execution.attempt,
                    execution.failure_reason.value if execution.failure_reason else None,
                    execution.failure_detail,
                    execution.updated_at,
                    execution.id,
                ),
            )
            conn.commit()

    def mark_failed(self, execution_id: str, reason: FailureReason, detail: str) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE pipeline_executions
                SET status = %s, failure_reason = %s, failure_detail = %s, updated_at = NOW()
                WHERE id = %s AND status = %s
                """,
                (
                    ExecutionStatus.FAILED.value,
                    reason.value,
                    detail,
                    execution_id,
                    ExecutionStatus.RUNNING.value,
                ),
            )
            conn.commit()

    def get(self, execution_id: str) -> Execution | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, document_id, stage, status, payload, attempt,
                           failure_reason, failure_detail, created_at, updated_at
                    FROM pipeline_executions
                    WHERE id = %s
                    """,
                    (execution_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return Execution(
            id=str(row["id"]),
            document_id=row["document_id"],
            stage=Stage(row["stage"]),
            status=ExecutionStatus(row["status"]),
            payload=dict(row["payload"] or {}),
            attempt=row["attempt"],
            failure_reason=(
                FailureReason(row["failure_reason"]) if row["failure_reason"] else None
            ),
            failure_detail=row["failure_detail"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_params(execution: Execution) -> tuple[Any, ...]:
        return (
            execution.id,
            execution.document_id,
            execution.stage.value,
            execution.status.value,
            Jsonb(execution.payload),
            execution.attempt,
            execution.failure_reason.value if execution.failure_reason else None,
            execution.failure_detail,
            execution.created_at,
            execution.updated_at,
        )
