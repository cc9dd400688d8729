"""Configuration helpers for the review engine runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional

from review_engine.scheduling.calendar import resolve_timezone


DEFAULT_APP_NAME = "Spaced Review Engine"
DEFAULT_BATCH_SIZE = 20


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    review_timezone: Optional[str]
    review_batch_size: int

    @property
    def timezone(self) -> Optional[tzinfo]:
        """Zone used for calendar-day arithmetic; ``None`` means the host zone."""
        return resolve_timezone(self.review_timezone)

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        app_name = os.getenv("APP_NAME", DEFAULT_APP_NAME)
        app_env = os.getenv("APP_ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        review_timezone = os.getenv("REVIEW_TIMEZONE") or None

        if review_timezone is not None:
            try:
                resolve_timezone(review_timezone)
            except ValueError as exc:
                raise RuntimeError(
                    f"REVIEW_TIMEZONE must be an IANA time zone name, got {review_timezone!r}."
                ) from exc

        try:
            review_batch_size = int(os.getenv("REVIEW_BATCH_SIZE", str(DEFAULT_BATCH_SIZE)))
        except ValueError as exc:
            raise RuntimeError("REVIEW_BATCH_SIZE must be an integer.") from exc

        if review_batch_size < 1:
            raise RuntimeError("REVIEW_BATCH_SIZE must be a positive integer.")

        return cls(
            app_name=app_name,
            app_env=app_env,
            log_level=log_level,
            review_timezone=review_timezone,
            review_batch_size=review_batch_size,
        )
