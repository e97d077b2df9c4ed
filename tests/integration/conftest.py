import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from cpadocs.config.settings import Settings
from cpadocs.database.connection import close_pool, get_connection, init_pool
from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.documents.models import Document, DocumentCategory, NewDocument

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "cpadocs" / "database" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "cpadocs_test")
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
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run these tests")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def user_id(integration_pool: None) -> Generator[str, None, None]:
    """A throwaway owner; everything it owns is deleted after the test."""
    owner = f"test-{uuid.uuid4()}"
    yield owner
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                DELETE FROM unified_transactions
                WHERE document_id IN (SELECT id FROM documents WHERE user_id = %s)
                """,
                (owner,),
            )
            cur.execute("DELETE FROM irs_notices WHERE user_id = %s", (owner,))
            cur.execute("DELETE FROM documents WHERE user_id = %s", (owner,))
        conn.commit()


@pytest.fixture
def seed_document(user_id: str) -> Document:
    return DocumentsRepository().create(
        NewDocument(
            user_id=user_id,
            filename="1700000000000_abc123_cp2000.pdf",
            original_filename="cp2000.pdf",
            file_size=2048,
            mime_type="application/pdf",
            document_type=DocumentCategory.TAX_NOTICE,
            storage_bucket="irs-notices",
            storage_path=f"{user_id}/1700000000000_abc123_cp2000.pdf",
            client_id="client-1",
            tags=["2022"],
        )
    )
