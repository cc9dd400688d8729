"""Spaced-repetition scheduling core shared by every item kind."""

from .sm2 import (
    INITIAL_EASE_FACTOR,
    MAX_INTERVAL_DAYS,
    MIN_EASE_FACTOR,
    InvalidReviewInput,
    Quality,
    ReviewResult,
    compute_next_review,
    days_until_due,
    derive_quality,
    is_due,
)
from .state import ReviewStage, ReviewState, apply_review, derive_review_stage, is_mastered

__all__ = [
    "INITIAL_EASE_FACTOR",
    "MAX_INTERVAL_DAYS",
    "MIN_EASE_FACTOR",
    "InvalidReviewInput",
    "Quality",
    "ReviewResult",
    "ReviewStage",
    "ReviewState",
    "apply_review",
    "compute_next_review",
    "days_until_due",
    "derive_quality",
    "derive_review_stage",
    "is_due",
    "is_mastered",
]
