from __future__ import annotations

import itertools
import math
from datetime import datetime, timezone

import pytest

from review_engine.scheduling.calendar import MILLIS_PER_DAY
from review_engine.scheduling.sm2 import (
    MAX_INTERVAL_DAYS,
    MIN_EASE_FACTOR,
    InvalidReviewInput,
    Quality,
    compute_next_review,
    days_until_due,
    derive_quality,
    is_due,
)


UTC = timezone.utc
NOW = int(datetime(2024, 1, 15, 9, 0, tzinfo=UTC).timestamp() * 1000)


def _review(quality: int, ease: float, interval: int, repetition: int):
    return compute_next_review(
        quality=quality,
        ease_factor=ease,
        interval_days=interval,
        repetition=repetition,
        now=NOW,
        tz=UTC,
    )


def test_first_successful_review_uses_initial_interval() -> None:
    result = _review(5, 2.5, 1, 0)

    assert result.repetition == 1
    assert result.next_interval == 1
    assert result.ease_factor == pytest.approx(2.6)
    assert result.next_review_time == NOW + MILLIS_PER_DAY


def test_second_successful_review_uses_fixed_six_days() -> None:
    result = _review(5, 2.6, 1, 1)

    assert result.repetition == 2
    assert result.next_interval == 6
    assert result.next_review_time == NOW + 6 * MILLIS_PER_DAY


def test_steady_state_interval_grows_with_ease() -> None:
    result = _review(5, 2.6, 6, 2)

    assert result.repetition == 3
    assert result.ease_factor == pytest.approx(2.7)
    assert result.next_interval == 16


def test_lapse_resets_progress_but_keeps_softened_ease() -> None:
    result = _review(1, 2.6, 16, 3)

    assert result.repetition == 0
    assert result.next_interval == 1
    assert result.ease_factor == pytest.approx(2.06)
    assert result.ease_factor >= MIN_EASE_FACTOR


def test_blackout_at_floor_keeps_minimum_ease() -> None:
    result = _review(0, 1.3, 5, 2)

    assert result.ease_factor == MIN_EASE_FACTOR
    assert result.repetition == 0
    assert result.next_interval == 1


def test_repeated_perfect_reviews_stop_at_interval_cap() -> None:
    ease, interval, repetition = 2.5, 1, 0
    intervals = []
    for _ in range(15):
        result = _review(Quality.PERFECT, ease, interval, repetition)
        ease, interval, repetition = result.ease_factor, result.next_interval, result.repetition
        intervals.append(interval)

    assert intervals[:4] == [1, 6, 17, 49]
    assert max(intervals) == MAX_INTERVAL_DAYS
    assert intervals[-5:] == [MAX_INTERVAL_DAYS] * 5


def test_interval_above_cap_from_legacy_data_is_clamped() -> None:
    result = _review(3, 2.5, 5000, 4)

    assert result.next_interval == MAX_INTERVAL_DAYS


@pytest.mark.parametrize("quality", [0, 1, 2])
@pytest.mark.parametrize("repetition", [0, 1, 7])
def test_any_lapse_restarts_schedule(quality: int, repetition: int) -> None:
    result = _review(quality, 2.8, 120, repetition)

    assert result.repetition == 0
    assert result.next_interval == 1


@pytest.mark.parametrize("quality", [3, 4, 5])
def test_bootstrap_steps_do_not_depend_on_ease(quality: int) -> None:
    assert _review(quality, 1.3, 40, 0).next_interval == 1
    assert _review(quality, 3.5, 40, 1).next_interval == 6


def test_results_respect_floor_and_interval_bounds() -> None:
    for quality, ease, interval, repetition in itertools.product(
        range(6), (1.3, 1.5, 2.5, 3.2), (1, 6, 500, 1095), (0, 1, 2, 10)
    ):
        result = _review(quality, ease, interval, repetition)
        assert result.ease_factor >= MIN_EASE_FACTOR
        assert 1 <= result.next_interval <= MAX_INTERVAL_DAYS


def test_ease_response_is_monotonic_in_quality() -> None:
    eases = [_review(quality, 2.5, 10, 3).ease_factor for quality in range(6)]

    assert eases == sorted(eases)
    assert eases[5] > eases[0]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"quality": -1},
        {"quality": 6},
        {"ease_factor": 1.29},
        {"interval_days": 0},
        {"repetition": -1},
        {"quality": math.nan},
        {"ease_factor": math.nan},
        {"interval_days": math.nan},
        {"repetition": math.nan},
    ],
)
def test_contract_violations_are_rejected(kwargs: dict) -> None:
    arguments = {"quality": 4, "ease_factor": 2.5, "interval_days": 1, "repetition": 0, "now": NOW}
    arguments.update(kwargs)

    with pytest.raises(InvalidReviewInput):
        compute_next_review(**arguments)


def test_invalid_input_is_a_value_error() -> None:
    assert issubclass(InvalidReviewInput, ValueError)


@pytest.mark.parametrize(
    ("is_correct", "attempts", "expected"),
    [
        (True, 1, Quality.PERFECT),
        (True, 2, Quality.CORRECT),
        (True, 3, Quality.CORRECT_HARD),
        (True, 9, Quality.CORRECT_HARD),
        (False, 1, Quality.WRONG),
        (False, 4, Quality.WRONG),
        (True, 0, Quality.WRONG),
    ],
)
def test_derive_quality_policy(is_correct: bool, attempts: int, expected: Quality) -> None:
    assert derive_quality(is_correct, attempts) == expected


def test_due_check_is_inclusive() -> None:
    assert is_due(NOW, NOW) is True
    assert is_due(NOW, NOW - 1) is False
    assert is_due(NOW, NOW + 1) is True


def test_days_until_due_floors_towards_negative() -> None:
    assert days_until_due(NOW + 2 * MILLIS_PER_DAY + MILLIS_PER_DAY // 2, NOW) == 2
    assert days_until_due(NOW, NOW) == 0
    assert days_until_due(NOW - 1, NOW) == -1
    assert days_until_due(NOW - 3 * MILLIS_PER_DAY, NOW) == -3
