"""Engine and session helpers for the database-backed cache store."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_settings
from .base import Base

_MEMORY_SQLITE_URLS = frozenset({"sqlite://", "sqlite:///:memory:"})

_state: Optional[Tuple[Engine, sessionmaker[Session]]] = None


def build_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine; in-memory SQLite shares one connection so every session sees the same tables."""
    options: dict[str, object] = {"echo": echo, "future": True, "pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    if database_url in _MEMORY_SQLITE_URLS:
        options["poolclass"] = StaticPool
    return create_engine(database_url, **options)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


def _initialised() -> Tuple[Engine, sessionmaker[Session]]:
    global _state
    if _state is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("LEARNPATH_DATABASE_URL must be set to use the database cache backend.")
        engine = build_engine(settings.database_url, echo=settings.database_echo)
        Base.metadata.create_all(engine)
        _state = (engine, build_session_factory(engine))
    return _state


def get_engine() -> Engine:
    return _initialised()[0]


def get_session_factory() -> sessionmaker[Session]:
    return _initialised()[1]


@contextmanager
def session_scope(
    factory: Optional[sessionmaker[Session]] = None, *, commit: bool = True
) -> Iterator[Session]:
    """Yield a session that commits on success (when ``commit``) and always rolls back on error."""
    with (factory or get_session_factory())() as session:
        try:
            yield session
            if commit:
                session.commit()
        except Exception:  # noqa: BLE001
            session.rollback()
            raise


def dispose_engine() -> None:
    global _state
    if _state is not None:
        _state[0].dispose()
    _state = None


__all__ = [
    "build_engine",
    "build_session_factory",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "session_scope",
]
