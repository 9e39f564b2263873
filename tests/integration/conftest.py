import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from creditworker.config.settings import Settings
from creditworker.database.connection import close_pool, get_connection, init_pool

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "creditworker" / "database" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "creditworker_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def local_only_settings(test_settings: Settings) -> Settings:
    """Settings with every cloud credential blanked, leaving only the local fallback."""
    return test_settings.model_copy(
        update={
            "google_document_ai_project_id": "",
            "google_document_ai_processor_id": "",
            "google_document_ai_access_token": "",
            "google_vision_api_key": "",
            "aws_access_key_id": "",
            "aws_secret_access_key": "",
            "method_backoff_base_seconds": 0.0,
        }
    )


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text())
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a scratch database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[int], None, None]:
    """Report IDs to delete after the test; child rows go with them."""
    cleanup: list[int] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for report_id in cleanup:
                cur.execute("DELETE FROM credit_reports WHERE id = %s", (report_id,))
        conn.commit()


@pytest.fixture
def seed_report(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[int],
) -> Any:
    """Factory inserting a credit_reports row and returning its ID."""

    def _seed(
        file_path: str = "missing.pdf",
        extraction_status: str = "pending",
        attempts: int = 0,
    ) -> int:
        with db_conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO credit_reports
                (user_id, file_path, file_name, mime_type, extraction_status, attempts)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (42, file_path, Path(file_path).name, "application/pdf", extraction_status, attempts),
            )
            row = cur.fetchone()
            assert row is not None
            report_id = row[0]
        db_conn.commit()
        integration_cleanup.append(report_id)
        return report_id

    return _seed


@pytest.fixture
def files_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def credit_report_on_disk(
    seed_report: Any,
    files_root: Path,
    credit_report_pdf_bytes: bytes,
) -> tuple[int, Path]:
    file_path = f"{uuid.uuid4()}.pdf"
    (files_root / file_path).write_bytes(credit_report_pdf_bytes)
    return seed_report(file_path=file_path), files_root
