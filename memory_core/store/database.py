"""
Database - engine lifecycle and transactions

Wraps one SQLAlchemy engine per store instance. Every store operation runs
inside `transaction()`, so all writes of one operation land together or not
at all.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Literal, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from memory_core.errors import PersistenceError
from memory_core.store.models import Base

logger = logging.getLogger(__name__)

DatabaseStatus = Literal["closed", "ready", "error"]


def _is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def get_engine(url: str) -> Engine:
    """
    Build an engine for the given URL.

    In-memory SQLite shares a single connection so every session sees the
    same database. File-based SQLite gets its parent directory created.
    """
    parsed = make_url(url)
    if _is_memory_sqlite(url):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if parsed.get_backend_name() == "sqlite" and parsed.database:
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(url, pool_pre_ping=True)


class Database:
    """
    Engine + session factory with an explicit open/close lifecycle.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self.status: DatabaseStatus = "closed"
        self.error: Optional[str] = None
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def ready(self) -> bool:
        return self.status == "ready"

    def open(self) -> None:
        """
        Create the engine and any missing tables.

        Safe to call multiple times.
        """
        if self.ready:
            return
        try:
            self._engine = get_engine(self.url)
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            self.status = "error"
            self.error = str(exc)
            logger.error("Failed to open database %s: %s", make_url(self.url).render_as_string(hide_password=True), exc)
            raise PersistenceError(f"Failed to open database: {exc}") from exc

        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        self.status = "ready"
        self.error = None
        logger.debug("Database ready: %s", make_url(self.url).render_as_string(hide_password=True))

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None
        self.status = "closed"

    def reset(self) -> None:
        """
        DANGEROUS: Delete all data and recreate tables.
        """
        if self._engine is None:
            raise PersistenceError("Database is not open")
        try:
            Base.metadata.drop_all(self._engine)
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to reset database: {exc}") from exc
        logger.warning("All tables dropped and recreated")

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Yield a session; commit on success, roll back on any error.

        SQLAlchemy errors surface as PersistenceError, everything else
        propagates unchanged.
        """
        if self._session_factory is None:
            raise PersistenceError("Database is not open")

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(str(exc)) from exc
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()
