"""
Engine and session management for the call record store.

SQLite for local runs and tests, PostgreSQL in production. The API gets a
session per request through ``get_db``; the Celery worker and the trigger CLI
use ``session_scope``.
"""

from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator, Iterator
from proactive_calls.config import config


def _make_engine(url: str):
    if url.startswith("sqlite"):
        # The API serves sync endpoints from a thread pool.
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        echo=config.DEBUG,
    )


engine = _make_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding a request-scoped session.

    Usage:
        @router.post("/cron/proactive-calls")
        def run(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for one background job; rolled back if the job raises."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """Create missing tables (API startup, worker startup, CLI)."""
    from proactive_calls import db_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
