"""Session helpers for request handlers and background work."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from .session import SessionLocal, engine as _engine


def get_session_dependency() -> Iterator[Session]:
    """Yield a request scoped session.

    Services commit their own work; anything left uncommitted when the
    request fails is rolled back.
    """

    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_engine() -> Engine:
    return _engine


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide a transactional scope committing on success.

    Used by the Celery worker, the seed scripts and every bulk item, each of
    which needs a session independent of the request.
    """

    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = ["get_engine", "get_session_dependency", "session_scope"]
