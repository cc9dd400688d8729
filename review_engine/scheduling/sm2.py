"""SM-2 style spaced-repetition scheduling for any reviewable item."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import tzinfo
from enum import IntEnum
from typing import Optional

from review_engine.scheduling.calendar import MILLIS_PER_DAY, add_calendar_days


INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
INITIAL_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
# Three years.
MAX_INTERVAL_DAYS = 365 * 3
LAPSE_THRESHOLD = 3


class Quality(IntEnum):
    """Self-assessed recall quality of a single review."""

    BLACKOUT = 0
    WRONG = 1
    WRONG_BUT_RECALLED = 2
    CORRECT_HARD = 3
    CORRECT = 4
    PERFECT = 5


class InvalidReviewInput(ValueError):
    """Raised when a review is requested with arguments outside the contract."""


@dataclass(slots=True)
class ReviewResult:
    """Scheduling values produced by a single review."""

    next_interval: int
    ease_factor: float
    repetition: int
    next_review_time: int


def _validate(quality: int, ease_factor: float, interval_days: int, repetition: int) -> None:
    if not Quality.BLACKOUT <= quality <= Quality.PERFECT:
        raise InvalidReviewInput(f"Quality must be in range 0-5, got {quality}")
    if not ease_factor >= MIN_EASE_FACTOR:
        raise InvalidReviewInput(f"Ease factor must be >= {MIN_EASE_FACTOR}, got {ease_factor}")
    if not interval_days >= 1:
        raise InvalidReviewInput(f"Interval must be positive, got {interval_days}")
    if not repetition >= 0:
        raise InvalidReviewInput(f"Repetition must be non-negative, got {repetition}")


def next_ease_factor(quality: int, ease_factor: float) -> float:
    """Return the ease factor after a review of the given quality."""
    penalty = 5 - quality
    return max(MIN_EASE_FACTOR, ease_factor + (0.1 - penalty * (0.08 + penalty * 0.02)))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_next_review(
    *,
    quality: int,
    ease_factor: float,
    interval_days: int,
    repetition: int,
    now: int,
    tz: Optional[tzinfo] = None,
) -> ReviewResult:
    """Return the next schedule for an item reviewed at ``now`` (epoch millis).

    A quality below 3 is a lapse: repetition restarts and the interval drops
    back to one day, while the softened ease factor is kept. The first two
    successful repetitions use fixed 1 and 6 day steps. After that the
    interval grows by the ease factor, capped at ``MAX_INTERVAL_DAYS``.
    """
    _validate(quality, ease_factor, interval_days, repetition)

    new_ease = next_ease_factor(quality, ease_factor)

    if quality < LAPSE_THRESHOLD:
        new_repetition, new_interval = 0, INITIAL_INTERVAL_DAYS
    elif repetition == 0:
        new_repetition, new_interval = 1, INITIAL_INTERVAL_DAYS
    elif repetition == 1:
        new_repetition, new_interval = 2, SECOND_INTERVAL_DAYS
    else:
        grown = _round_half_up(interval_days * new_ease)
        new_repetition = repetition + 1
        new_interval = min(MAX_INTERVAL_DAYS, max(1, grown))

    return ReviewResult(
        next_interval=new_interval,
        ease_factor=new_ease,
        repetition=new_repetition,
        next_review_time=add_calendar_days(now, new_interval, tz),
    )


def derive_quality(is_correct: bool, attempt_count: int) -> int:
    """Map a coarse answer outcome onto a quality band.

    This is product policy rather than part of the spacing algorithm: a
    correct first attempt is perfect, the second attempt counts as hesitant,
    anything later as difficult, and every wrong answer as ``WRONG``.
    """
    if not is_correct or attempt_count < 1:
        return int(Quality.WRONG)
    if attempt_count == 1:
        return int(Quality.PERFECT)
    if attempt_count == 2:
        return int(Quality.CORRECT)
    return int(Quality.CORRECT_HARD)


def is_due(next_review_time: int, now: int) -> bool:
    """Return True once ``now`` has reached the scheduled review time."""
    return now >= next_review_time


def days_until_due(next_review_time: int, now: int) -> int:
    """Return whole days until the review is due; negative when overdue."""
    return (next_review_time - now) // MILLIS_PER_DAY
