"""Bootstrap logic for wiring the review service."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from review_engine.app.settings import AppSettings
from review_engine.db import get_session_factory, run_migrations_if_needed
from review_engine.services import ReviewService


LOGGER = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def bootstrap(
    settings: AppSettings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> ReviewService:
    """Prepare the database and return a review service for the given settings."""
    _configure_logging(settings.log_level)

    if session_factory is None:
        try:
            run_migrations_if_needed()
        except Exception:
            LOGGER.exception("Database migrations failed. Aborting startup.")
            raise
        session_factory = get_session_factory()

    service = ReviewService(
        session_factory,
        tz=settings.timezone,
        batch_size=settings.review_batch_size,
    )
    LOGGER.info(
        "%s ready in %s mode (time zone: %s).",
        settings.app_name,
        settings.app_env,
        settings.review_timezone or "local",
    )
    return service
