"""Database configuration and helper utilities."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
import logging
from pathlib import Path
from typing import TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from sonora.config import load_config


class Base(DeclarativeBase):
    pass


metadata = Base.metadata

_engine: Engine | None = None
SessionLocal: sessionmaker[Session] | None = None

_logger = logging.getLogger(__name__)

T = TypeVar("T")

SessionCallable = Callable[[Session], T]
SessionFactory = Callable[[], AbstractContextManager[Session]]


def _synchronous_url(url: URL) -> URL:
    if url.drivername.lower() in {"sqlite", "sqlite+aiosqlite"}:
        return url.set(drivername="sqlite+pysqlite")
    return url


def _prepare_database_file(url: URL) -> None:
    database = url.database
    if not url.drivername.startswith("sqlite") or not database or database == ":memory:":
        return
    path = Path(database)
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)


def _build_engine(database_url: str) -> Engine:
    url = _synchronous_url(make_url(database_url))
    connect_args: dict[str, object] = {}
    if url.drivername.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        _prepare_database_file(url)
    return create_engine(url, future=True, connect_args=connect_args)


def _dispose_engine() -> None:
    global _engine, SessionLocal

    if _engine is not None:
        _engine.dispose()

    _engine = None
    SessionLocal = None


def _ensure_engine(database_url: str | None = None) -> Engine:
    global _engine, SessionLocal

    if database_url is None:
        if _engine is not None:
            return _engine
        database_url = load_config().database.url
    target_url = _synchronous_url(make_url(database_url)).render_as_string(hide_password=False)
    if _engine is not None and _engine.url.render_as_string(hide_password=False) == target_url:
        return _engine

    _dispose_engine()
    _engine = _build_engine(database_url)
    SessionLocal = sessionmaker(
        bind=_engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    return _engine


def get_session() -> Session:
    if SessionLocal is None:
        init_db()
    if SessionLocal is None:
        raise RuntimeError("Database session factory is not initialized.")
    return SessionLocal()


@contextmanager
def session_scope() -> Iterator[Session]:
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(database_url: str | None = None) -> None:
    """Create the engine for ``database_url`` (or the configured URL) and any missing tables."""

    engine = _ensure_engine(database_url)

    from sonora import models  # noqa: F401

    Base.metadata.create_all(bind=engine, checkfirst=True)
    _logger.debug("Database schema ensured", extra={"event": "database.bootstrap"})


def reset_engine_for_tests() -> None:
    """Reset the cached engine/session so tests get a clean database handle."""

    _dispose_engine()


def _call_with_session(func: SessionCallable[T], *, factory: SessionFactory | None = None) -> T:
    context = factory() if factory is not None else session_scope()
    with context as session:
        return func(session)


async def run_session(func: SessionCallable[T], *, factory: SessionFactory | None = None) -> T:
    """Execute ``func`` with a database session in a worker thread."""

    return await asyncio.to_thread(_call_with_session, func, factory=factory)


__all__ = [
    "Base",
    "SessionCallable",
    "SessionFactory",
    "get_session",
    "init_db",
    "metadata",
    "reset_engine_for_tests",
    "run_session",
    "session_scope",
]
