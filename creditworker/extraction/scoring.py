from creditworker.extraction.models import ExtractionMethodName
from creditworker.extraction.thresholds import QualityThresholds
from creditworker.extraction.vocabulary import alnum_ratio, count_vocab_matches

METHOD_PRIORS: dict[ExtractionMethodName, float] = {
    ExtractionMethodName.GOOGLE_DOCUMENT_AI: 0.60,
    ExtractionMethodName.GOOGLE_VISION: 0.55,
    ExtractionMethodName.TEXTRACT: 0.50,
    ExtractionMethodName.FALLBACK: 0.30,
}

MAX_CONFIDENCE = 0.99


class ConfidenceScorer:
    """Deterministic 0-1 confidence for extracted text.

    Starts from the method's prior scaled by
    min(len / scorer_prior_full_length, 1). Adds capped credits for length,
    alphanumeric density and credit vocabulary matches. The total is capped
    at 0.99.
    """

    def __init__(self, thresholds: QualityThresholds | None = None) -> None:
        self._thresholds = thresholds or QualityThresholds()

    def score(self, text: str, method: ExtractionMethodName) -> float:
        t = self._thresholds
        stripped = text.strip()
        if len(stripped) < t.scorer_min_text_length:
            return 0.0

        prior = METHOD_PRIORS[method] * min(len(stripped) / t.scorer_prior_full_length, 1.0)
        length_credit = min(len(stripped) / t.scorer_length_cap, 1.0) * t.scorer_length_weight
        alnum_credit = alnum_ratio(stripped) * t.scorer_alnum_weight
        keyword_credit = min(
            count_vocab_matches(stripped) * t.scorer_keyword_credit,
            t.scorer_keyword_cap,
        )
        total = prior + length_credit + alnum_credit + keyword_credit
        return round(min(total, MAX_CONFIDENCE), 4)
