from statistics import mean

from creditworker.extraction.exceptions import (
    AllMethodsFailedError,
    ContentInvalidError,
    ExtractionError,
    MethodFailedError,
)
from creditworker.extraction.models import (
    ConsolidationDecision,
    ConsolidationStrategy,
    ExtractionAttempt,
    ExtractionMethodName,
)
from creditworker.extraction.thresholds import QualityThresholds
from creditworker.extraction.validator import ContentValidator
from creditworker.logging.logger import Log

MAX_CONFIDENCE = 0.99
MEDIAN_LENGTH_MAX_CONFIDENCE = 0.95
MANUAL_REVIEW_CONFIDENCE = 0.5

_METHOD_ORDER = list(ExtractionMethodName)


def _rank(attempt: ExtractionAttempt) -> tuple[float, int]:
    return (-attempt.confidence, _METHOD_ORDER.index(attempt.method))


class Consolidator:
    """Selects one attempt's text as the consolidated result of a run.

    Never merges or rewrites text: the decision always carries the text of
    exactly one successful, validator-approved attempt.
    """

    def __init__(
        self,
        validator: ContentValidator | None = None,
        thresholds: QualityThresholds | None = None,
    ) -> None:
        self._thresholds = thresholds or QualityThresholds()
        self._validator = validator or ContentValidator(self._thresholds)

    def consolidate(
        self,
        attempts: list[ExtractionAttempt],
        strategy: ConsolidationStrategy = ConsolidationStrategy.HIGHEST_CONFIDENCE,
    ) -> ConsolidationDecision:
        candidates = sorted(self._candidates(attempts), key=_rank)

        if strategy is ConsolidationStrategy.MEDIAN_LENGTH:
            decision = self._median_length(candidates)
        elif strategy is ConsolidationStrategy.MANUAL_REVIEW:
            decision = self._manual_review(candidates)
        else:
            decision = self._highest_confidence(candidates)

        Log.info(
            f"Consolidated {len(candidates)} candidate(s) with {strategy.value}: "
            f"primary={decision.primary_method.value} "
            f"confidence={decision.overall_confidence} "
            f"conflicts={decision.conflict_count} "
            f"review={decision.requires_human_review}"
        )
        return decision

    def _candidates(self, attempts: list[ExtractionAttempt]) -> list[ExtractionAttempt]:
        candidates: list[ExtractionAttempt] = []
        causes: list[ExtractionError] = []
        for attempt in attempts:
            if not attempt.succeeded:
                causes.append(
                    MethodFailedError(f"{attempt.method.value}: {attempt.error}", retryable=False)
                )
                continue
            result = self._validator.validate(attempt.text)
            if not result.is_valid:
                Log.info(
                    f"Rejected {attempt.method.value} output: {result.reason}",
                    method=attempt.method.value,
                    rule=result.rule,
                )
                causes.append(ContentInvalidError(attempt.method, result))
                continue
            candidates.append(attempt)

        if not candidates:
            raise AllMethodsFailedError(causes)
        return candidates

    def _highest_confidence(self, candidates: list[ExtractionAttempt]) -> ConsolidationDecision:
        t = self._thresholds
        top = candidates[0]
        primary = top
        notes = ""
        if not top.has_structured_data:
            for candidate in candidates[1:]:
                if (
                    candidate.has_structured_data
                    and top.confidence - candidate.confidence <= t.structured_margin
                ):
                    primary = candidate
                    notes = (
                        f"preferred {candidate.method.value} over {top.method.value} "
                        "for structured data"
                    )
                    break

        agreement = min(t.agreement_bonus * (len(candidates) - 1), t.agreement_bonus_cap)
        structured = t.structured_bonus if primary.has_structured_data else 0.0
        overall = round(min(MAX_CONFIDENCE, primary.confidence + agreement + structured), 4)
        return self._decision(
            primary,
            candidates,
            overall,
            ConsolidationStrategy.HIGHEST_CONFIDENCE,
            notes,
        )

    def _median_length(self, candidates: list[ExtractionAttempt]) -> ConsolidationDecision:
        by_length = sorted(candidates, key=lambda attempt: (attempt.character_count, _rank(attempt)))
        primary = by_length[len(by_length) // 2]
        overall = round(
            min(MEDIAN_LENGTH_MAX_CONFIDENCE, mean(c.confidence for c in candidates)), 4
        )
        return self._decision(
            primary,
            candidates,
            overall,
            ConsolidationStrategy.MEDIAN_LENGTH,
            "selected the median-length candidate",
        )

    def _manual_review(self, candidates: list[ExtractionAttempt]) -> ConsolidationDecision:
        return self._decision(
            candidates[0],
            candidates,
            MANUAL_REVIEW_CONFIDENCE,
            ConsolidationStrategy.MANUAL_REVIEW,
            "flagged for manual review",
            force_review=True,
        )

    def _decision(
        self,
        primary: ExtractionAttempt,
        candidates: list[ExtractionAttempt],
        overall: float,
        strategy: ConsolidationStrategy,
        notes: str,
        force_review: bool = False,
    ) -> ConsolidationDecision:
        return ConsolidationDecision(
            primary_method=primary.method,
            consolidated_text=primary.text,
            overall_confidence=overall,
            methods_considered=tuple(c.method for c in candidates),
            conflict_count=self._count_conflicts(primary, candidates),
            requires_human_review=force_review or overall < self._thresholds.review_threshold,
            strategy=strategy,
            notes=notes,
        )

    def _count_conflicts(
        self,
        primary: ExtractionAttempt,
        candidates: list[ExtractionAttempt],
    ) -> int:
        """Candidates whose text length differs from the primary's by more than the spread."""
        conflicts = 0
        for candidate in candidates:
            if candidate is primary:
                continue
            shorter = min(candidate.character_count, primary.character_count)
            longer = max(candidate.character_count, primary.character_count)
            if shorter == 0 or (longer - shorter) / shorter > self._thresholds.conflict_length_spread:
                conflicts += 1
        return conflicts
