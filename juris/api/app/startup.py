"""Application startup/shutdown logic (DB bootstrap, deadline scheduler).

Extracted from main.py so the handlers can be exercised without the server.
"""

import logging
import os

from fastapi import FastAPI

from .config import settings
from .db import Base, SessionLocal, engine
from .scheduler import DeadlineScheduler

logger = logging.getLogger(__name__)


def bootstrap_database() -> None:
    # Production runs Alembic before the server starts; SKIP_SQL_MIGRATIONS
    # keeps this hook from touching the schema there.
    if os.getenv("SKIP_SQL_MIGRATIONS", "").strip().lower() in ("1", "true", "yes"):
        logger.info("SKIP_SQL_MIGRATIONS=true -> skipping create_all")
        return

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")


async def startup(app: FastAPI) -> None:
    """FastAPI startup handler."""
    logger.info("Starting juris API...")
    try:
        bootstrap_database()
    except Exception as exc:
        logger.error("Database bootstrap failed: %s", exc)
        raise

    scheduler = DeadlineScheduler(SessionLocal)
    app.state.scheduler = scheduler
    if settings.ALERT_SCHEDULER_ENABLED:
        scheduler.start()
    else:
        logger.info("Alert scheduler disabled (ALERT_SCHEDULER_ENABLED=false)")


async def shutdown(app: FastAPI) -> None:
    scheduler: DeadlineScheduler | None = getattr(app.state, "scheduler", None)
    if scheduler is not None and scheduler.is_running:
        scheduler.stop()
    logger.info("juris API stopped")
