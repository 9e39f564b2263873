from dataclasses import dataclass

from creditworker.config.settings import Settings


@dataclass(frozen=True)
class QualityThresholds:
    """Tunable heuristics for scoring, validation and consolidation."""

    scorer_min_text_length: int = 10
    scorer_length_cap: int = 5000
    scorer_prior_full_length: int = 1000
    scorer_length_weight: float = 0.2
    scorer_alnum_weight: float = 0.1
    scorer_keyword_credit: float = 0.02
    scorer_keyword_cap: float = 0.15
    validator_min_length: int = 40
    validator_container_marker_min: int = 3
    validator_metadata_max_keyword_hits: int = 0
    validator_min_alnum_ratio: float = 0.4
    validator_large_text_length: int = 20000
    validator_large_text_min_alnum_ratio: float = 0.5
    structured_margin: float = 0.1
    agreement_bonus: float = 0.05
    agreement_bonus_cap: float = 0.1
    structured_bonus: float = 0.05
    review_threshold: float = 0.7
    conflict_length_spread: float = 0.5

    @classmethod
    def from_settings(cls, settings: Settings) -> "QualityThresholds":
        return cls(
            **{
                name: getattr(settings, f"quality_{name}")
                for name in cls.__dataclass_fields__
            }
        )
