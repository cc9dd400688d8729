"""Application services built on top of the scheduling core."""

from .review import ItemNotFoundError, ReviewService, ScheduledItem

__all__ = ["ItemNotFoundError", "ReviewService", "ScheduledItem"]
