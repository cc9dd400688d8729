"""Helpers for storing reviewable items and their scheduling fields."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from enum import Enum
from typing import Optional, Sequence, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.scheduling.calendar import add_calendar_days, start_of_day
from review_engine.scheduling.state import MASTERY_STAGE_CUTOFF, ReviewState

from . import DECK_TYPE_QUESTION, DECK_TYPE_VOCABULARY, Deck, Question, ReviewLog, Word


ReviewableItem = Union[Word, Question]

_STATE_FIELDS = (
    "ease_factor",
    "interval_days",
    "repetition",
    "next_review_time",
    "last_review_time",
    "first_learn_date",
    "review_stage",
    "correct_count",
    "wrong_count",
)


class ItemKind(str, Enum):
    """Kinds of learnable items sharing the review schedule."""

    WORD = "word"
    QUESTION = "question"

    @property
    def model(self) -> type[ReviewableItem]:
        return Word if self is ItemKind.WORD else Question

    @property
    def deck_type(self) -> str:
        return DECK_TYPE_VOCABULARY if self is ItemKind.WORD else DECK_TYPE_QUESTION

    @classmethod
    def for_deck_type(cls, deck_type: str) -> "ItemKind":
        return cls.WORD if deck_type == DECK_TYPE_VOCABULARY else cls.QUESTION


def _strip_optional(value: Optional[str]) -> Optional[str]:
    return value.strip() if isinstance(value, str) else value


@dataclass(slots=True)
class WordPayload:
    """Definition of a vocabulary entry to be stored in a deck."""

    english: str
    translation: str
    part_of_speech: str = ""
    phonetic: str = ""
    word_type: str = "word"
    phrase_usage: Optional[str] = None

    def normalized(self) -> "WordPayload":
        """Return a payload with leading/trailing whitespace stripped."""
        return WordPayload(
            english=self.english.strip(),
            translation=self.translation.strip(),
            part_of_speech=self.part_of_speech.strip(),
            phonetic=self.phonetic.strip(),
            word_type=self.word_type.strip().lower(),
            phrase_usage=_strip_optional(self.phrase_usage),
        )


@dataclass(slots=True)
class QuestionPayload:
    """Definition of a quiz question to be stored in a deck."""

    question_type: str
    question_text: str
    correct_answer: str
    option_a: Optional[str] = None
    option_b: Optional[str] = None
    option_c: Optional[str] = None
    option_d: Optional[str] = None

    def normalized(self) -> "QuestionPayload":
        """Return a payload with whitespace stripped and the answer upper-cased."""
        return QuestionPayload(
            question_type=self.question_type.strip().lower(),
            question_text=self.question_text.strip(),
            correct_answer=self.correct_answer.strip().upper(),
            option_a=_strip_optional(self.option_a),
            option_b=_strip_optional(self.option_b),
            option_c=_strip_optional(self.option_c),
            option_d=_strip_optional(self.option_d),
        )


@dataclass(slots=True)
class DeckReviewInfo:
    """Review progress of a single deck."""

    deck_id: int
    deck_name: str
    item_kind: ItemKind
    total_items: int
    learned_items: int
    due_items: int
    mastered_items: int
    today_learned: int
    today_reviewed: int
    last_review_time: Optional[int]


def review_state_of(item: ReviewableItem) -> ReviewState:
    """Read the scheduling fields of a stored item."""
    return ReviewState(**{name: getattr(item, name) for name in _STATE_FIELDS})


def store_review_state(item: ReviewableItem, state: ReviewState) -> None:
    """Copy scheduling fields onto a stored item."""
    for name in _STATE_FIELDS:
        setattr(item, name, getattr(state, name))


async def create_deck(
    session: AsyncSession,
    name: str,
    deck_type: str = DECK_TYPE_VOCABULARY,
    description: str = "",
) -> Deck:
    """Create a new deck of words or questions."""
    if deck_type not in {DECK_TYPE_VOCABULARY, DECK_TYPE_QUESTION}:
        raise ValueError(f"Unsupported deck type: {deck_type!r}")
    deck = Deck(name=name.strip(), deck_type=deck_type, description=description.strip())
    session.add(deck)
    await session.flush()
    return deck


def _ensure_deck_type(deck: Deck, expected: str) -> None:
    if deck.deck_type != expected:
        raise ValueError(
            f"Deck {deck.id} holds {deck.deck_type} items and cannot store {expected} items."
        )


async def add_word(session: AsyncSession, deck: Deck, payload: WordPayload) -> Word:
    """Store a vocabulary entry in a deck with a fresh review state."""
    _ensure_deck_type(deck, DECK_TYPE_VOCABULARY)
    normalized = payload.normalized()
    word = Word(
        deck_id=deck.id,
        english=normalized.english,
        translation=normalized.translation,
        part_of_speech=normalized.part_of_speech,
        phonetic=normalized.phonetic,
        word_type=normalized.word_type,
        phrase_usage=normalized.phrase_usage,
    )
    store_review_state(word, ReviewState())
    session.add(word)
    await session.flush()
    return word


async def add_question(session: AsyncSession, deck: Deck, payload: QuestionPayload) -> Question:
    """Store a quiz question in a deck with a fresh review state."""
    _ensure_deck_type(deck, DECK_TYPE_QUESTION)
    normalized = payload.normalized()
    question = Question(
        deck_id=deck.id,
        question_type=normalized.question_type,
        question_text=normalized.question_text,
        correct_answer=normalized.correct_answer,
        option_a=normalized.option_a,
        option_b=normalized.option_b,
        option_c=normalized.option_c,
        option_d=normalized.option_d,
    )
    store_review_state(question, ReviewState())
    session.add(question)
    await session.flush()
    return question


async def get_item(session: AsyncSession, kind: ItemKind, item_id: int) -> Optional[ReviewableItem]:
    """Load a word or question by identifier."""
    return await session.get(kind.model, item_id)


async def record_review_log(
    session: AsyncSession,
    kind: ItemKind,
    item: ReviewableItem,
    quality: int,
    now: int,
) -> None:
    """Append a review event reflecting the item's freshly stored state."""
    session.add(
        ReviewLog(
            item_kind=kind.value,
            item_id=item.id,
            deck_id=item.deck_id,
            quality=quality,
            ease_factor=item.ease_factor,
            interval_days=item.interval_days,
            repetition=item.repetition,
            reviewed_at=now,
        )
    )
    await session.flush()


async def list_due_items(
    session: AsyncSession,
    kind: ItemKind,
    now: int,
    deck_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> Sequence[ReviewableItem]:
    """Return studied items whose review time has been reached, oldest first."""
    model = kind.model
    stmt = (
        select(model)
        .where(
            model.next_review_time > 0,
            model.next_review_time <= now,
            model.review_stage > 0,
        )
        .order_by(model.next_review_time, model.id)
    )
    if deck_id is not None:
        stmt = stmt.where(model.deck_id == deck_id)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return result.scalars().all()


async def list_new_items(
    session: AsyncSession,
    kind: ItemKind,
    deck_id: int,
    limit: Optional[int] = None,
) -> Sequence[ReviewableItem]:
    """Return items of a deck that have never been studied."""
    model = kind.model
    stmt = (
        select(model)
        .where(model.deck_id == deck_id, model.first_learn_date == 0)
        .order_by(model.id)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return result.scalars().all()


async def list_difficult_items(
    session: AsyncSession,
    kind: ItemKind,
    deck_id: int,
    limit: Optional[int] = None,
) -> Sequence[ReviewableItem]:
    """Return items of a deck answered wrong more often than right, worst first."""
    model = kind.model
    stmt = (
        select(model)
        .where(model.deck_id == deck_id, model.wrong_count > model.correct_count)
        .order_by(model.wrong_count.desc(), model.id)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return result.scalars().all()


async def _count(session: AsyncSession, model: type[ReviewableItem], *criteria) -> int:
    stmt = select(func.count()).select_from(model).where(*criteria)
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def get_deck_review_info(
    session: AsyncSession,
    deck_id: int,
    now: int,
    tz: Optional[tzinfo] = None,
) -> Optional[DeckReviewInfo]:
    """Aggregate review progress for a deck, or ``None`` if it does not exist."""
    deck = await session.get(Deck, deck_id)
    if deck is None:
        return None

    kind = ItemKind.for_deck_type(deck.deck_type)
    model = kind.model
    in_deck = model.deck_id == deck_id
    today_start = start_of_day(now, tz)
    today_end = add_calendar_days(today_start, 1, tz)

    last_review = await session.execute(
        select(func.max(model.last_review_time)).where(in_deck, model.last_review_time > 0)
    )

    return DeckReviewInfo(
        deck_id=deck.id,
        deck_name=deck.name,
        item_kind=kind,
        total_items=await _count(session, model, in_deck),
        learned_items=await _count(session, model, in_deck, model.first_learn_date > 0),
        due_items=await _count(
            session,
            model,
            in_deck,
            model.next_review_time > 0,
            model.next_review_time <= now,
            model.review_stage > 0,
        ),
        mastered_items=await _count(
            session, model, in_deck, model.review_stage > MASTERY_STAGE_CUTOFF
        ),
        today_learned=await _count(
            session,
            model,
            in_deck,
            model.first_learn_date >= today_start,
            model.first_learn_date < today_end,
        ),
        today_reviewed=await _count(
            session,
            model,
            in_deck,
            model.last_review_time >= today_start,
            model.last_review_time < today_end,
            model.review_stage > 0,
        ),
        last_review_time=last_review.scalar_one_or_none(),
    )
