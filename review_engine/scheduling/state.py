"""Per-item review state and its display-only stage classification."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import tzinfo
from enum import IntEnum
from typing import Optional

from review_engine.scheduling.sm2 import (
    INITIAL_EASE_FACTOR,
    INITIAL_INTERVAL_DAYS,
    LAPSE_THRESHOLD,
    compute_next_review,
)


class ReviewStage(IntEnum):
    """Coarse progress buckets shown to the learner."""

    NEW = 0
    LEARNED = 1
    FIRST_REVIEW = 2
    SECOND_REVIEW = 3
    THIRD_REVIEW = 4
    FOURTH_REVIEW = 5
    MASTERED = 6


MASTERY_STAGE_CUTOFF = 5

_STAGE_LABELS = {
    ReviewStage.NEW: "Not learned yet",
    ReviewStage.LEARNED: "Learned, awaiting first review",
    ReviewStage.FIRST_REVIEW: "Reviewed once",
    ReviewStage.SECOND_REVIEW: "Reviewed twice",
    ReviewStage.THIRD_REVIEW: "Reviewed three times",
    ReviewStage.FOURTH_REVIEW: "Reviewed four times",
    ReviewStage.MASTERED: "Mastered",
}


@dataclass(slots=True)
class ReviewState:
    """Scheduling fields persisted alongside any learnable item."""

    ease_factor: float = INITIAL_EASE_FACTOR
    interval_days: int = INITIAL_INTERVAL_DAYS
    repetition: int = 0
    next_review_time: int = 0
    last_review_time: int = 0
    first_learn_date: int = 0
    review_stage: int = 0
    correct_count: int = 0
    wrong_count: int = 0

    @property
    def is_new(self) -> bool:
        return self.first_learn_date == 0


def derive_review_stage(state: ReviewState) -> int:
    """Classify a state into a display stage from its repetition streak."""
    if state.is_new:
        return int(ReviewStage.NEW)
    return min(state.repetition + 1, int(ReviewStage.MASTERED))


def is_mastered(stage: int) -> bool:
    return stage > MASTERY_STAGE_CUTOFF


def describe_stage(stage: int) -> str:
    """Return a human readable label for a review stage."""
    if stage <= ReviewStage.NEW:
        return _STAGE_LABELS[ReviewStage.NEW]
    if stage >= ReviewStage.MASTERED:
        return _STAGE_LABELS[ReviewStage.MASTERED]
    return _STAGE_LABELS[ReviewStage(stage)]


def apply_review(
    state: ReviewState,
    quality: int,
    *,
    now: int,
    tz: Optional[tzinfo] = None,
) -> ReviewState:
    """Return the state that results from recording a review of ``quality`` at ``now``.

    The given state is left untouched. Counters and timestamps are
    bookkeeping only; the schedule itself comes from ``compute_next_review``.
    """
    result = compute_next_review(
        quality=quality,
        ease_factor=state.ease_factor,
        interval_days=state.interval_days,
        repetition=state.repetition,
        now=now,
        tz=tz,
    )

    successful = quality >= LAPSE_THRESHOLD
    updated = replace(
        state,
        ease_factor=result.ease_factor,
        interval_days=result.next_interval,
        repetition=result.repetition,
        next_review_time=result.next_review_time,
        last_review_time=now,
        first_learn_date=state.first_learn_date or now,
        correct_count=state.correct_count + (1 if successful else 0),
        wrong_count=state.wrong_count + (0 if successful else 1),
    )
    updated.review_stage = derive_review_stage(updated)
    return updated
