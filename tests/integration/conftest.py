import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from biomarker_ingest.config.settings import Settings
from biomarker_ingest.database.connection import (
    apply_schema,
    close_pool,
    get_connection,
    init_pool,
)
from biomarker_ingest.database.models import DocumentRecord
from biomarker_ingest.database.repositories.document_repository import DocumentRepository
from biomarker_ingest.processor.file_storage import FileStorage

TEST_OWNER_ID = 900001


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "biomarkers_test")
    return Settings(llm_provider="example")


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        apply_schema()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[None, None, None]:
    yield
    # processing_status and biomarkers cascade from lab_documents
    with get_connection() as conn:
        conn.execute("DELETE FROM lab_documents WHERE owner_id = %s", (TEST_OWNER_ID,))
        conn.commit()


@pytest.fixture
def files_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def storage(files_root: Path) -> FileStorage:
    return FileStorage(files_root)


@pytest.fixture
def seed_document(
    integration_cleanup: None,
    storage: FileStorage,
    lab_report_text: str,
) -> DocumentRecord:
    data = lab_report_text.encode("utf-8")
    storage_path = storage.save(TEST_OWNER_ID, "report.txt", data)
    return DocumentRepository().create(
        owner_id=TEST_OWNER_ID,
        file_name="report.txt",
        content_type="text/plain",
        storage_path=storage_path,
        file_size_bytes=len(data),
    )
