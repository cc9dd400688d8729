from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from review_engine.db import DECK_TYPE_QUESTION, ReviewLog
from review_engine.db.items import (
    ItemKind,
    QuestionPayload,
    WordPayload,
    add_question,
    add_word,
    create_deck,
)
from review_engine.scheduling.calendar import MILLIS_PER_DAY
from review_engine.scheduling.sm2 import InvalidReviewInput
from review_engine.scheduling.state import ReviewStage
from review_engine.services import ItemNotFoundError, ReviewService


UTC = timezone.utc
NOW = int(datetime(2024, 1, 15, 9, 0, tzinfo=UTC).timestamp() * 1000)


async def _create_word(session_factory, english: str = "tree") -> tuple[int, int]:
    async with session_factory() as session:
        async with session.begin():
            deck = await create_deck(session, "Nature")
            word = await add_word(session, deck, WordPayload(english=english, translation="boom"))
    return deck.id, word.id


async def _review_logs(session_factory) -> list[ReviewLog]:
    async with session_factory() as session:
        result = await session.execute(select(ReviewLog).order_by(ReviewLog.id))
        return list(result.scalars().all())


@pytest.mark.asyncio
async def test_record_review_persists_new_schedule(session_factory) -> None:
    _, word_id = await _create_word(session_factory)
    service = ReviewService(session_factory, tz=UTC)

    state = await service.record_review(ItemKind.WORD, word_id, 5, now=NOW)
    stored = await service.get_state(ItemKind.WORD, word_id)

    assert state.repetition == 1
    assert state.interval_days == 1
    assert state.next_review_time == NOW + MILLIS_PER_DAY
    assert stored == state

    logs = await _review_logs(session_factory)
    assert [(log.item_kind, log.item_id, log.quality, log.reviewed_at) for log in logs] == [
        ("word", word_id, 5, NOW)
    ]


@pytest.mark.asyncio
async def test_consecutive_reviews_follow_sm2_steps(session_factory) -> None:
    _, word_id = await _create_word(session_factory)
    service = ReviewService(session_factory, tz=UTC)

    now = NOW
    intervals = []
    for _ in range(3):
        state = await service.record_review(ItemKind.WORD, word_id, 5, now=now)
        intervals.append(state.interval_days)
        now = state.next_review_time

    assert intervals == [1, 6, 17]
    assert state.ease_factor == pytest.approx(2.8)
    assert state.correct_count == 3


@pytest.mark.asyncio
async def test_invalid_quality_leaves_stored_state_untouched(session_factory) -> None:
    _, word_id = await _create_word(session_factory)
    service = ReviewService(session_factory, tz=UTC)
    await service.record_review(ItemKind.WORD, word_id, 4, now=NOW)
    before = await service.get_state(ItemKind.WORD, word_id)

    with pytest.raises(InvalidReviewInput):
        await service.record_review(ItemKind.WORD, word_id, 7, now=NOW + MILLIS_PER_DAY)

    assert await service.get_state(ItemKind.WORD, word_id) == before
    assert len(await _review_logs(session_factory)) == 1


@pytest.mark.asyncio
async def test_unknown_item_raises_not_found(session_factory) -> None:
    service = ReviewService(session_factory, tz=UTC)

    with pytest.raises(ItemNotFoundError) as exc_info:
        await service.record_review(ItemKind.QUESTION, 404, 5, now=NOW)

    assert exc_info.value.item_id == 404
    assert isinstance(exc_info.value, LookupError)


@pytest.mark.asyncio
async def test_concurrent_reviews_of_same_item_are_not_lost(session_factory) -> None:
    _, word_id = await _create_word(session_factory)
    service = ReviewService(session_factory, tz=UTC)

    await asyncio.gather(
        service.record_review(ItemKind.WORD, word_id, 5, now=NOW),
        service.record_review(ItemKind.WORD, word_id, 5, now=NOW),
    )
    state = await service.get_state(ItemKind.WORD, word_id)

    assert state.correct_count == 2
    assert state.repetition == 2
    assert state.interval_days == 6
    assert len(await _review_logs(session_factory)) == 2


@pytest.mark.asyncio
async def test_record_answer_derives_quality_for_questions(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            deck = await create_deck(session, "Grammar", DECK_TYPE_QUESTION)
            question = await add_question(
                session,
                deck,
                QuestionPayload(question_type="true_false", question_text="'Het' is an article.", correct_answer="A"),
            )
    service = ReviewService(session_factory, tz=UTC)

    hesitant = await service.record_answer(
        ItemKind.QUESTION, question.id, is_correct=True, attempt_count=2, now=NOW
    )
    wrong = await service.record_answer(
        ItemKind.QUESTION, question.id, is_correct=False, attempt_count=1, now=NOW + MILLIS_PER_DAY
    )

    assert hesitant.review_stage == ReviewStage.FIRST_REVIEW
    assert wrong.review_stage == ReviewStage.LEARNED
    assert wrong.wrong_count == 1
    assert [log.quality for log in await _review_logs(session_factory)] == [4, 1]


@pytest.mark.asyncio
async def test_due_items_reports_overdue_days(session_factory) -> None:
    deck_id, word_id = await _create_word(session_factory)
    other_deck_id, untouched_id = await _create_word(session_factory, english="leaf")
    service = ReviewService(session_factory, tz=UTC, batch_size=5)
    await service.record_review(ItemKind.WORD, word_id, 3, now=NOW)

    not_yet = await service.due_items(ItemKind.WORD, now=NOW + MILLIS_PER_DAY // 2)
    overdue = await service.due_items(ItemKind.WORD, deck_id=deck_id, now=NOW + 3 * MILLIS_PER_DAY)
    new = await service.new_items(ItemKind.WORD, other_deck_id, now=NOW)
    studied = await service.new_items(ItemKind.WORD, deck_id, now=NOW)

    assert not_yet == []
    assert [item.item_id for item in overdue] == [word_id]
    assert overdue[0].days_until_due == -2
    assert overdue[0].state.repetition == 1
    assert [item.item_id for item in new] == [untouched_id]
    assert new[0].state.is_new
    assert studied == []


@pytest.mark.asyncio
async def test_deck_overview_counts_reviews_today(session_factory) -> None:
    deck_id, word_id = await _create_word(session_factory)
    service = ReviewService(session_factory, tz=UTC)
    await service.record_review(ItemKind.WORD, word_id, 5, now=NOW)

    info = await service.deck_overview(deck_id, now=NOW + 60_000)

    assert info is not None
    assert info.total_items == 1
    assert info.learned_items == 1
    assert info.today_learned == 1
    assert info.today_reviewed == 1
    assert info.due_items == 0
    assert info.last_review_time == NOW


def test_service_rejects_non_positive_batch_size() -> None:
    with pytest.raises(ValueError):
        ReviewService(async_sessionmaker(), batch_size=0)


@pytest.mark.asyncio
async def test_explicit_zero_limit_and_unscheduled_new_items(session_factory) -> None:
    deck_id, word_id = await _create_word(session_factory)
    service = ReviewService(session_factory, tz=UTC, batch_size=5)

    new = await service.new_items(ItemKind.WORD, deck_id, now=NOW)
    none_requested = await service.new_items(ItemKind.WORD, deck_id, now=NOW, limit=0)

    assert [item.item_id for item in new] == [word_id]
    assert new[0].days_until_due is None
    assert none_requested == []


@pytest.mark.asyncio
async def test_difficult_items_follow_wrong_answers(session_factory) -> None:
    deck_id, word_id = await _create_word(session_factory)
    service = ReviewService(session_factory, tz=UTC)

    assert await service.difficult_items(ItemKind.WORD, deck_id, now=NOW) == []

    await service.record_review(ItemKind.WORD, word_id, 1, now=NOW)
    difficult = await service.difficult_items(ItemKind.WORD, deck_id, now=NOW)

    assert [item.item_id for item in difficult] == [word_id]
    assert difficult[0].state.wrong_count == 1
    assert difficult[0].days_until_due == 1
