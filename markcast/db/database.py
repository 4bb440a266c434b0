"""Explicit database handle shared by the segment, playlist, and ledger stores.

Responsibilities:
- Own one SQLAlchemy engine and session factory per database file.
- Run every store mutation inside one all-or-nothing transaction.
- Serialize writers across processes (SQLite `BEGIN IMMEDIATE`).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from .schema import Base


class Database:
    """Engine and transaction-scope provider passed to each store at construction."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        """Create the engine for `url` and install SQLite transaction hooks."""

        self.url = url
        self.engine: Engine = create_engine(url, echo=echo)
        if self.engine.dialect.name == "sqlite":
            _install_sqlite_hooks(self.engine)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @classmethod
    def from_path(cls, path: Path, *, echo: bool = False) -> "Database":
        """Open (or create) a SQLite database file, creating parent directories."""

        path.parent.mkdir(parents=True, exist_ok=True)
        return cls(f"sqlite:///{path}", echo=echo)

    def create_schema(self) -> None:
        """Create all tables that do not exist yet."""

        Base.metadata.create_all(self.engine)
        logger.debug("database schema ensured url={}", self.url)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session whose writes commit together or not at all."""

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Release pooled connections."""

        self.engine.dispose()


def _install_sqlite_hooks(engine: Engine) -> None:
    """Let SQLAlchemy own transaction boundaries and take the write lock up front."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        # Disable pysqlite's implicit BEGIN so the "begin" hook below controls it.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(connection) -> None:
        connection.exec_driver_sql("BEGIN IMMEDIATE")
