import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from docworker.config.settings import Settings
from docworker.database.connection import close_pool, get_connection, init_pool

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "docworker" / "database" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docworker_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text())
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run integration tests")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def document_id(integration_pool: None) -> Generator[str, None, None]:
    """A fresh document id whose rows are removed after the test."""
    doc_id = f"it-{uuid.uuid4().hex}"
    yield doc_id
    with get_connection() as conn:
        conn.execute("DELETE FROM documents WHERE document_id = %s", (doc_id,))
        conn.execute("DELETE FROM pipeline_executions WHERE document_id = %s", (doc_id,))
        conn.execute("DELETE FROM upload_events WHERE document_id = %s", (doc_id,))
        conn.commit()


@pytest.fixture
def seed_upload_event(db_conn: psycopg.Connection[Any], document_id: str) -> Any:
    def _seed(object_ref: str) -> int:
        with db_conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO upload_events (object_ref, document_id, name, owner, tags)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
                """,
                (object_ref, document_id, "Integration upload", "tester", ["it"]),
            )
            row = cur.fetchone()
            assert row is not None
        db_conn.commit()
        return int(row[0])

    return _seed
