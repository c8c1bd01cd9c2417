"""Database configuration and helpers for the permanent row store."""

from __future__ import annotations

import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

DATABASE_URL = os.getenv("FLIGHTWALL_DB_URL", "sqlite:///./flightwall.db")

Base = declarative_base()

logger = logging.getLogger("flightwall.db")


def build_engine(url: str = DATABASE_URL) -> Engine:
    """Create an engine; SQLite connections are shared with worker threads."""

    return create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
    )


engine = build_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    """Create database tables if they do not exist."""

    import flightwall.db_models  # noqa: F401 - models are imported for side effects

    Base.metadata.create_all(bind=bind or engine)
    logger.debug("Row store tables ensured on %s", (bind or engine).url)
