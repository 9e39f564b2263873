from datetime import datetime, timedelta, timezone

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from creditworker.database.connection import get_connection
from creditworker.database.models import ExtractionSummary, MethodSummary
from creditworker.extraction.models import (
    ConsolidationDecision,
    ConsolidationStrategy,
    ExtractionAttempt,
    ExtractionMethodName,
)

SUMMARY_WINDOWS: dict[str, timedelta] = {
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "month": timedelta(days=30),
}


class ExtractionLedger:
    """Persistence for extraction attempts and consolidation decisions.

    Attempts are append-only and grouped by run_id, so earlier runs stay
    available for audit. Each report keeps only its latest decision.
    """

    def record_attempt(self, report_id: int, run_id: str, attempt: ExtractionAttempt) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO extraction_results
                (report_id, run_id, extraction_method, extracted_text, error_message,
                 processing_time_ms, character_count, word_count, confidence_score,
                 has_structured_data, extraction_metadata)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    report_id,
                    run_id,
                    attempt.method.value,
                    attempt.text,
                    attempt.error,
                    attempt.elapsed_ms,
                    attempt.character_count,
                    attempt.word_count,
                    attempt.confidence,
                    attempt.has_structured_data,
                    Jsonb(attempt.metadata),
                ),
            )
            conn.commit()

    def find_latest_attempts(self, report_id: int) -> list[ExtractionAttempt]:
        """Attempts of the most recent run for a report, in completion order."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT extraction_method, extracted_text, error_message,
                           processing_time_ms, confidence_score,
                           has_structured_data, extraction_metadata
                    FROM extraction_results
                    WHERE report_id = %s
                      AND run_id = (
                          SELECT run_id FROM extraction_results
                          WHERE report_id = %s
                          ORDER BY created_at DESC, id DESC
                          LIMIT 1
                      )
                    ORDER BY id
                    """,
                    (report_id, report_id),
                )
                rows = cur.fetchall()

        return [
            ExtractionAttempt(
                method=ExtractionMethodName(row["extraction_method"]),
                text=row["extracted_text"],
                confidence=float(row["confidence_score"]),
                elapsed_ms=row["processing_time_ms"],
                has_structured_data=row["has_structured_data"],
                error=row["error_message"],
                metadata=row["extraction_metadata"] or {},
            )
            for row in rows
        ]

    def record_decision(self, report_id: int, run_id: str, decision: ConsolidationDecision) -> None:
        """Store the decision for a report, replacing any earlier one."""
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO consolidation_metadata
                (report_id, run_id, primary_source, consolidation_strategy,
                 confidence_level, methods_considered, conflict_count,
                 requires_human_review, consolidation_notes, processed_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, NOW())
                ON CONFLICT (report_id) DO UPDATE SET
                    run_id = EXCLUDED.run_id,
                    primary_source = EXCLUDED.primary_source,
                    consolidation_strategy = EXCLUDED.consolidation_strategy,
                    confidence_level = EXCLUDED.confidence_level,
                    methods_considered = EXCLUDED.methods_considered,
                    conflict_count = EXCLUDED.conflict_count,
                    requires_human_review = EXCLUDED.requires_human_review,
                    consolidation_notes = EXCLUDED.consolidation_notes,
                    processed_at = NOW()
                """,
                (
                    report_id,
                    run_id,
                    decision.primary_method.value,
                    decision.strategy.value,
                    decision.overall_confidence,
                    Jsonb([method.value for method in decision.methods_considered]),
                    decision.conflict_count,
                    decision.requires_human_review,
                    decision.notes,
                ),
            )
            conn.commit()

    def clear_decision(self, report_id: int) -> None:
        with get_connection() as conn:
            conn.execute(
                "DELETE FROM consolidation_metadata WHERE report_id = %s",
                (report_id,),
            )
            conn.commit()

    def find_decision(self, report_id: int) -> ConsolidationDecision | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT c.primary_source, c.consolidation_strategy, c.confidence_level,
                           c.methods_considered, c.conflict_count,
                           c.requires_human_review, c.consolidation_notes,
                           r.raw_text
                    FROM consolidation_metadata c
                    JOIN credit_reports r ON r.id = c.report_id
                    WHERE c.report_id = %s
                    """,
                    (report_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return ConsolidationDecision(
            primary_method=ExtractionMethodName(row["primary_source"]),
            consolidated_text=row["raw_text"] or "",
            overall_confidence=float(row["confidence_level"]),
            methods_considered=tuple(
                ExtractionMethodName(method) for method in row["methods_considered"]
            ),
            conflict_count=row["conflict_count"],
            requires_human_review=row["requires_human_review"],
            strategy=ConsolidationStrategy(row["consolidation_strategy"]),
            notes=row["consolidation_notes"] or "",
        )

    def summary(self, window: str = "week", now: datetime | None = None) -> ExtractionSummary:
        """Per-method and consolidation figures for the last day, week or month."""
        if window not in SUMMARY_WINDOWS:
            raise ValueError(f"Unknown summary window '{window}'. Choose from: {list(SUMMARY_WINDOWS)}")
        since = (now or datetime.now(timezone.utc)) - SUMMARY_WINDOWS[window]

        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT extraction_method AS method,
                           COUNT(*) AS attempts,
                           COUNT(*) FILTER (WHERE error_message IS NOT NULL) AS failures,
                           COALESCE(AVG(confidence_score), 0) AS average_confidence
                    FROM extraction_results
                    WHERE created_at >= %s
                    GROUP BY extraction_method
                    ORDER BY extraction_method
                    """,
                    (since,),
                )
                method_rows = cur.fetchall()
                cur.execute(
                    """
                    SELECT COUNT(*) AS total,
                           COALESCE(AVG(confidence_level), 0) AS average_confidence,
                           COUNT(*) FILTER (WHERE requires_human_review) AS review_count
                    FROM consolidation_metadata
                    WHERE processed_at >= %s
                    """,
                    (since,),
                )
                totals = cur.fetchone()

        return ExtractionSummary(
            window=window,
            since=since,
            methods=[
                MethodSummary(
                    method=row["method"],
                    attempts=row["attempts"],
                    failures=row["failures"],
                    average_confidence=round(float(row["average_confidence"]), 3),
                )
                for row in method_rows
            ],
            total_consolidations=totals["total"] if totals else 0,
            average_consolidation_confidence=(
                round(float(totals["average_confidence"]), 3) if totals else 0.0
            ),
            review_count=totals["review_count"] if totals else 0,
        )
