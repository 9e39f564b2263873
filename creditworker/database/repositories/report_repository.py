from typing import Any

import psycopg
from psycopg.rows import dict_row

from creditworker.database.connection import get_connection, transaction
from creditworker.database.models import ReportJob
from creditworker.database.repositories.entity_repository import ENTITY_TABLES
from creditworker.extraction.models import ConsolidationDecision
from creditworker.processor.exceptions import ExtractionInProgressError, ReportNotFoundError
from creditworker.processor.models import CreditReport, ExtractionStatus

RESULT_TABLES = ("consolidation_metadata", *ENTITY_TABLES)


class ReportRepository:
    """Database operations for the credit_reports table.

    The extraction_status column doubles as the work queue and as the
    per-report lock: only pending reports are claimed, and a report in
    processing cannot be re-queued.
    """

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    def claim_next_report(self, conn: psycopg.Connection[Any]) -> ReportJob | None:
        """Claim the oldest pending report using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, user_id, attempts
                FROM credit_reports
                WHERE extraction_status = 'pending'
                  AND attempts < %s
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts,),
            )
            row = cur.fetchone()

        if row is None:
            conn.commit()
            return None

        conn.execute(
            """
            UPDATE credit_reports
            SET extraction_status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        return ReportJob(
            id=row["id"],
            user_id=row["user_id"],
            extraction_status=ExtractionStatus.PROCESSING.value,
            attempts=row["attempts"],
        )

    def find_by_id(self, report_id: int) -> CreditReport:
        """Find a credit report by ID.

        Raises:
            ReportNotFoundError: if no report with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, user_id, file_path, file_name, mime_type,
                           file_size_bytes, extraction_status
                    FROM credit_reports
                    WHERE id = %s
                    """,
                    (report_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise ReportNotFoundError(f"Credit report {report_id} not found")

        return CreditReport(
            id=row["id"],
            user_id=row["user_id"],
            file_path=row["file_path"],
            file_name=row["file_name"],
            mime_type=row["mime_type"],
            file_size_bytes=row["file_size_bytes"],
            extraction_status=ExtractionStatus(row["extraction_status"]),
        )

    def find_job_by_id(self, report_id: int) -> ReportJob | None:
        """Queue view of a report. Useful for tests."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, user_id, extraction_status, attempts,
                           processing_errors, locked_at, created_at, updated_at
                    FROM credit_reports
                    WHERE id = %s
                    """,
                    (report_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return ReportJob(**row)

    def mark_completed(self, report_id: int, decision: ConsolidationDecision) -> None:
        """Store the consolidated text and verdict and mark the report completed."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE credit_reports
                SET extraction_status = 'completed',
                    raw_text = %s,
                    primary_extraction_method = %s,
                    consolidation_confidence = %s,
                    requires_human_review = %s,
                    processing_errors = NULL,
                    locked_at = NULL,
                    updated_at = NOW()
                WHERE id = %s
                """,
                (
                    decision.consolidated_text,
                    decision.primary_method.value,
                    decision.overall_confidence,
                    decision.requires_human_review,
                    report_id,
                ),
            )
            conn.commit()

    def mark_failed(self, report_id: int, reason: str) -> None:
        """Mark a report as permanently failed with a human-readable reason.

        A failed report keeps no results: the stored transcript and verdict,
        the consolidation decision and the parsed entities of earlier runs
        are removed in the same transaction.
        """
        with transaction() as conn:
            conn.execute(
                """
                UPDATE credit_reports
                SET extraction_status = 'failed', processing_errors = %s,
                    raw_text = NULL, primary_extraction_method = NULL,
                    consolidation_confidence = NULL, requires_human_review = FALSE,
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (reason, report_id),
            )
            for table in RESULT_TABLES:
                conn.execute(f"DELETE FROM {table} WHERE report_id = %s", (report_id,))

    def increment_attempts(self, report_id: int, error: str) -> None:
        """Increment attempt count and return the report to pending."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE credit_reports
                SET attempts = attempts + 1, extraction_status = 'pending',
                    processing_errors = %s, locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (error, report_id),
            )
            conn.commit()

    def update_decision(self, report_id: int, decision: ConsolidationDecision) -> None:
        """Replace the stored verdict after re-consolidation, keeping the status."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE credit_reports
                SET raw_text = %s,
                    primary_extraction_method = %s,
                    consolidation_confidence = %s,
                    requires_human_review = %s,
                    updated_at = NOW()
                WHERE id = %s
                """,
                (
                    decision.consolidated_text,
                    decision.primary_method.value,
                    decision.overall_confidence,
                    decision.requires_human_review,
                    report_id,
                ),
            )
            conn.commit()

    def request_reextraction(self, report_id: int) -> None:
        """Queue a completed or failed report for a fresh extraction run.

        Raises:
            ReportNotFoundError: if no report with this ID exists.
            ExtractionInProgressError: if the report is pending or processing.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    UPDATE credit_reports
                    SET extraction_status = 'pending', attempts = 0,
                        processing_errors = NULL, locked_at = NULL, updated_at = NOW()
                    WHERE id = %s
                      AND extraction_status IN ('completed', 'failed')
                    RETURNING id
                    """,
                    (report_id,),
                )
                updated = cur.fetchone()
                if updated is None:
                    cur.execute(
                        "SELECT extraction_status FROM credit_reports WHERE id = %s",
                        (report_id,),
                    )
                    existing = cur.fetchone()
            conn.commit()

        if updated is not None:
            return
        if existing is None:
            raise ReportNotFoundError(f"Credit report {report_id} not found")
        raise ExtractionInProgressError(
            f"Credit report {report_id} is {existing['extraction_status']}"
        )
