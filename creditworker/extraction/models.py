from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ExtractionMethodName(str, Enum):
    GOOGLE_DOCUMENT_AI = "google-document-ai"
    GOOGLE_VISION = "google-vision"
    TEXTRACT = "textract"
    FALLBACK = "fallback"


class ConsolidationStrategy(str, Enum):
    HIGHEST_CONFIDENCE = "highest_confidence"
    MEDIAN_LENGTH = "majority_vote"
    MANUAL_REVIEW = "manual_review"


class DetectedType(str, Enum):
    EMPTY = "empty"
    METADATA = "metadata"
    CREDIT_REPORT = "credit_report"
    UNRECOGNIZED_LARGE = "unrecognized_large"
    OTHER = "other"


@dataclass(frozen=True)
class Document:
    """Immutable input shared read-only by every extraction method."""

    report_id: int
    content: bytes
    media_type: str = "application/pdf"

    @property
    def size_bytes(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class MethodOutput:
    """Raw result returned by a single extraction method."""

    text: str
    has_structured_data: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ExtractionAttempt:
    """One method's result for one extraction run; error is None on success."""

    method: ExtractionMethodName
    text: str
    confidence: float
    elapsed_ms: int
    has_structured_data: bool = False
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def character_count(self) -> int:
        return len(self.text)

    @property
    def word_count(self) -> int:
        return len(self.text.split())

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def failed(
        cls,
        method: ExtractionMethodName,
        error: Exception,
        elapsed_ms: int,
    ) -> "ExtractionAttempt":
        return cls(
            method=method,
            text="",
            confidence=0.0,
            elapsed_ms=elapsed_ms,
            error=f"{type(error).__name__}: {error}",
        )


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    detected_type: DetectedType
    reason: str
    rule: int
    keyword_hits: int = 0
    alnum_ratio: float = 0.0


@dataclass(frozen=True)
class ConsolidationDecision:
    """The selected attempt and the confidence/review verdict for a run."""

    primary_method: ExtractionMethodName
    consolidated_text: str
    overall_confidence: float
    methods_considered: tuple[ExtractionMethodName, ...]
    conflict_count: int
    requires_human_review: bool
    strategy: ConsolidationStrategy
    notes: str = ""
