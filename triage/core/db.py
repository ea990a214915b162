"""Helpers for configuring SQLAlchemy engine and session factories."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from ..models import Base
from .settings import get_settings

logger = logging.getLogger(__name__)


def get_engine(database_url: str | None = None, **kwargs: object) -> Engine:
    """Create a SQLAlchemy engine.

    Args:
        database_url: Optional database URL. When ``None`` the configured
            ``DATABASE_URL`` is used.
        **kwargs: Additional keyword arguments forwarded to
            :func:`sqlalchemy.create_engine`.

    Returns:
        Configured SQLAlchemy :class:`~sqlalchemy.engine.Engine` instance.
    """

    url = database_url or get_settings().database_url
    engine = create_engine(url, **kwargs)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _configure_sqlite(dbapi_connection, _connection_record):  # pragma: no cover - dialect hook
            dbapi_connection.execute("PRAGMA foreign_keys=ON")

    return engine


def get_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine``."""

    return sessionmaker(bind=engine, expire_on_commit=False, future=True)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> None:
    """Create the conversation tables if they do not exist yet."""

    logger.info("Ensuring triage tables exist on %s", engine.url.render_as_string(hide_password=True))
    Base.metadata.create_all(engine)


__all__ = ["get_engine", "get_sessionmaker", "init_db", "session_scope"]
