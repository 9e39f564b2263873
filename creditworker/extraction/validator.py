from creditworker.extraction.models import DetectedType, ValidationResult
from creditworker.extraction.thresholds import QualityThresholds
from creditworker.extraction.vocabulary import (
    alnum_ratio,
    count_container_markers,
    count_evidence_hits,
)
from creditworker.logging.logger import Log


class ContentValidator:
    """Classifies extracted text as a plausible credit report or not.

    Rules are evaluated in order and the first one that applies decides:

    1. too short -> invalid ("empty/unreadable")
    2. PDF container syntax with no credit evidence -> invalid
       ("metadata only, no content")
    3. credit evidence and enough alphanumeric density -> valid
    4. very large text with moderate alphanumeric density -> valid even
       without credit evidence
    5. anything else -> invalid ("no recognizable content")
    """

    def __init__(self, thresholds: QualityThresholds | None = None) -> None:
        self._thresholds = thresholds or QualityThresholds()

    def validate(self, text: str) -> ValidationResult:
        result = self._classify(text.strip())
        Log.debug(
            f"Content validation: {result.detected_type.value} ({result.reason})",
            rule=result.rule,
        )
        return result

    def _classify(self, text: str) -> ValidationResult:
        t = self._thresholds
        if len(text) < t.validator_min_length:
            return ValidationResult(
                is_valid=False,
                detected_type=DetectedType.EMPTY,
                reason="empty/unreadable",
                rule=1,
            )

        hits = count_evidence_hits(text)
        ratio = alnum_ratio(text)

        if (
            count_container_markers(text) >= t.validator_container_marker_min
            and hits <= t.validator_metadata_max_keyword_hits
        ):
            return ValidationResult(
                is_valid=False,
                detected_type=DetectedType.METADATA,
                reason="metadata only, no content",
                rule=2,
                keyword_hits=hits,
                alnum_ratio=ratio,
            )

        if hits >= 1 and ratio >= t.validator_min_alnum_ratio:
            return ValidationResult(
                is_valid=True,
                detected_type=DetectedType.CREDIT_REPORT,
                reason="credit report content",
                rule=3,
                keyword_hits=hits,
                alnum_ratio=ratio,
            )

        if (
            len(text) >= t.validator_large_text_length
            and ratio >= t.validator_large_text_min_alnum_ratio
        ):
            return ValidationResult(
                is_valid=True,
                detected_type=DetectedType.UNRECOGNIZED_LARGE,
                reason="large text without recognized keywords",
                rule=4,
                keyword_hits=hits,
                alnum_ratio=ratio,
            )

        return ValidationResult(
            is_valid=False,
            detected_type=DetectedType.OTHER,
            reason="no recognizable content",
            rule=5,
            keyword_hits=hits,
            alnum_ratio=ratio,
        )
