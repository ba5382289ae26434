from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from .config import settings
import logging
from typing import Any

logger = logging.getLogger(__name__)


def build_engine(url: str) -> Engine:
    """Create the engine for ``url``.

    SQLite (tests, local dev) gets a single shared connection so an in-memory
    database survives across sessions and threads; everything else gets a
    regular pool.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=1800,  # Recycle connections every 30 min to avoid stale connections
        echo=False,
    )


try:
    engine = build_engine(settings.DATABASE_URL)
except Exception as e:
    logger.error("Failed to create database engine: %s", e)
    raise

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
