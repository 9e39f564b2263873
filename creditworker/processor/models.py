from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from creditworker.extraction.models import ConsolidationDecision
from creditworker.parsing.models import ParsedReport


class ExtractionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class CreditReport:
    """Domain model for an uploaded credit report (subset of DB columns)."""

    id: int
    user_id: int
    file_path: str
    mime_type: str
    extraction_status: ExtractionStatus
    file_name: str | None = None
    file_size_bytes: int | None = None


@dataclass(frozen=True)
class ExtractionOutcome:
    """Result of one extraction run as returned to callers."""

    report_id: int
    success: bool
    decision: ConsolidationDecision | None = None
    entities: ParsedReport | None = None
    reason: str | None = None
    suggestions: list[str] = field(default_factory=list)

    @classmethod
    def succeeded(
        cls,
        report_id: int,
        decision: ConsolidationDecision,
        entities: ParsedReport,
    ) -> "ExtractionOutcome":
        return cls(report_id=report_id, success=True, decision=decision, entities=entities)

    @classmethod
    def failed(cls, report_id: int, reason: str, suggestions: list[str]) -> "ExtractionOutcome":
        return cls(report_id=report_id, success=False, reason=reason, suggestions=suggestions)

    def to_dict(self) -> dict[str, Any]:
        if not self.success or self.decision is None:
            return {
                "report_id": self.report_id,
                "success": False,
                "reason": self.reason,
                "suggestions": list(self.suggestions),
            }
        return {
            "report_id": self.report_id,
            "success": True,
            "consolidated_text": self.decision.consolidated_text,
            "primary_method": self.decision.primary_method.value,
            "overall_confidence": self.decision.overall_confidence,
            "requires_human_review": self.decision.requires_human_review,
            "conflict_count": self.decision.conflict_count,
            "strategy": self.decision.strategy.value,
            "entities": asdict(self.entities) if self.entities is not None else None,
        }
