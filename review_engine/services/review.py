"""Review workflow that applies the scheduler to stored items."""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass
from datetime import tzinfo
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from review_engine.db.items import (
    DeckReviewInfo,
    ItemKind,
    ReviewableItem,
    get_deck_review_info,
    get_item,
    list_difficult_items,
    list_due_items,
    list_new_items,
    record_review_log,
    review_state_of,
    store_review_state,
)
from review_engine.scheduling.calendar import now_millis
from review_engine.scheduling.sm2 import InvalidReviewInput, days_until_due, derive_quality
from review_engine.scheduling.state import ReviewState, apply_review


LOGGER = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 20


class ItemNotFoundError(LookupError):
    """Raised when a review targets an item that does not exist."""

    def __init__(self, kind: ItemKind, item_id: int) -> None:
        super().__init__(f"No {kind.value} with id {item_id}")
        self.kind = kind
        self.item_id = item_id


@dataclass(slots=True)
class ScheduledItem:
    """An item waiting for review together with its schedule."""

    kind: ItemKind
    item_id: int
    deck_id: int
    state: ReviewState
    days_until_due: Optional[int]


class ReviewService:
    """Records reviews and answers schedule queries against the item store.

    Each review is a read-compute-write cycle executed in one transaction
    while holding a lock for that item, so concurrent reviews of the same
    item are applied one after the other instead of overwriting each other.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        tz: Optional[tzinfo] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be a positive integer.")
        self._session_factory = session_factory
        self._tz = tz
        self._batch_size = batch_size
        self._locks: "weakref.WeakValueDictionary[tuple[str, int], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, kind: ItemKind, item_id: int) -> asyncio.Lock:
        key = (kind.value, item_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def record_review(
        self,
        kind: ItemKind,
        item_id: int,
        quality: int,
        *,
        now: Optional[int] = None,
    ) -> ReviewState:
        """Apply a review of ``quality`` to an item and persist the new schedule."""
        if now is None:
            now = now_millis()

        async with self._lock_for(kind, item_id):
            async with self._session_factory() as session:
                async with session.begin():
                    item = await self._load(session, kind, item_id)
                    try:
                        updated = apply_review(review_state_of(item), quality, now=now, tz=self._tz)
                    except InvalidReviewInput:
                        LOGGER.warning(
                            "Rejected review of %s %s with quality %r.", kind.value, item_id, quality
                        )
                        raise
                    store_review_state(item, updated)
                    await record_review_log(session, kind, item, quality, now)

        LOGGER.info(
            "Recorded review of %s %s: quality=%s interval=%s repetition=%s ease=%.2f",
            kind.value,
            item_id,
            quality,
            updated.interval_days,
            updated.repetition,
            updated.ease_factor,
        )
        return updated

    async def record_answer(
        self,
        kind: ItemKind,
        item_id: int,
        *,
        is_correct: bool,
        attempt_count: int,
        now: Optional[int] = None,
    ) -> ReviewState:
        """Record a review whose quality is derived from the answer outcome."""
        quality = derive_quality(is_correct, attempt_count)
        return await self.record_review(kind, item_id, quality, now=now)

    async def get_state(self, kind: ItemKind, item_id: int) -> ReviewState:
        """Return the stored review state of an item."""
        async with self._session_factory() as session:
            item = await self._load(session, kind, item_id)
            return review_state_of(item)

    async def due_items(
        self,
        kind: ItemKind,
        *,
        deck_id: Optional[int] = None,
        now: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ScheduledItem]:
        """Return items due for review, most overdue first."""
        if now is None:
            now = now_millis()
        async with self._session_factory() as session:
            items = await list_due_items(
                session, kind, now, deck_id=deck_id, limit=self._limit(limit)
            )
            return [self._scheduled(kind, item, now) for item in items]

    async def new_items(
        self,
        kind: ItemKind,
        deck_id: int,
        *,
        now: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ScheduledItem]:
        """Return never-studied items of a deck in insertion order."""
        if now is None:
            now = now_millis()
        async with self._session_factory() as session:
            items = await list_new_items(session, kind, deck_id, limit=self._limit(limit))
            return [self._scheduled(kind, item, now) for item in items]

    async def difficult_items(
        self,
        kind: ItemKind,
        deck_id: int,
        *,
        now: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ScheduledItem]:
        """Return items of a deck missed more often than answered correctly."""
        if now is None:
            now = now_millis()
        async with self._session_factory() as session:
            items = await list_difficult_items(session, kind, deck_id, limit=self._limit(limit))
            return [self._scheduled(kind, item, now) for item in items]

    async def deck_overview(self, deck_id: int, *, now: Optional[int] = None) -> Optional[DeckReviewInfo]:
        """Return review statistics for a deck."""
        if now is None:
            now = now_millis()
        async with self._session_factory() as session:
            return await get_deck_review_info(session, deck_id, now, tz=self._tz)

    def _limit(self, limit: Optional[int]) -> int:
        return self._batch_size if limit is None else limit

    @staticmethod
    async def _load(session: AsyncSession, kind: ItemKind, item_id: int) -> ReviewableItem:
        item = await get_item(session, kind, item_id)
        if item is None:
            raise ItemNotFoundError(kind, item_id)
        return item

    @staticmethod
    def _scheduled(kind: ItemKind, item: ReviewableItem, now: int) -> ScheduledItem:
        state = review_state_of(item)
        return ScheduledItem(
            kind=kind,
            item_id=item.id,
            deck_id=item.deck_id,
            state=state,
            days_until_due=None if state.is_new else days_until_due(state.next_review_time, now),
        )
