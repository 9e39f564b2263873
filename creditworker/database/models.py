from dataclasses import dataclass
from datetime import datetime


@dataclass
class ReportJob:
    """Represents the queue columns of a row from the credit_reports table."""

    id: int
    user_id: int
    extraction_status: str
    attempts: int
    processing_errors: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class MethodSummary:
    """Per-method aggregate over extraction_results."""

    method: str
    attempts: int
    failures: int
    average_confidence: float


@dataclass
class ExtractionSummary:
    """Aggregate extraction and consolidation figures over a time window."""

    window: str
    since: datetime
    methods: list[MethodSummary]
    total_consolidations: int
    average_consolidation_confidence: float
    review_count: int
