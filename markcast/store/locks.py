"""Advisory single-writer lock held around ledger-writing assembly runs.

The lock is one row in `assembly_locks`; SQLite's `BEGIN IMMEDIATE`
serializes the check-and-insert, so two processes cannot both acquire it.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta
import os
import socket

from loguru import logger

from ..db.database import Database
from ..db.schema import AssemblyLockRow, utcnow
from ..errors import LockBusyError


def default_holder() -> str:
    """Return a `host:pid` token identifying this process."""

    return f"{socket.gethostname()}:{os.getpid()}"


class AssemblyLock:
    """Named advisory lock with stale-lock takeover."""

    def __init__(
        self,
        database: Database,
        *,
        name: str = "assembly",
        stale_after_seconds: float = 3600.0,
        holder: str | None = None,
    ) -> None:
        self._database = database
        self.name = name
        self.stale_after = timedelta(seconds=stale_after_seconds)
        self.holder = holder or default_holder()

    def acquire(self) -> None:
        """Take the lock or raise `LockBusyError` if a fresh holder exists."""

        with self._database.transaction() as session:
            row = session.get(AssemblyLockRow, self.name)
            now = utcnow()
            if row is not None:
                if row.holder != self.holder and now - row.acquired_at < self.stale_after:
                    raise LockBusyError(
                        stage="lock",
                        detail=(
                            f"Lock `{self.name}` is held by `{row.holder}` "
                            f"since {row.acquired_at.isoformat(timespec='seconds')}."
                        ),
                        hint="Wait for the other run to finish, then retry.",
                    )
                if row.holder != self.holder:
                    logger.warning(
                        "taking over stale lock name={} previous_holder={}",
                        self.name,
                        row.holder,
                    )
                row.holder = self.holder
                row.acquired_at = now
            else:
                session.add(AssemblyLockRow(name=self.name, holder=self.holder, acquired_at=now))
        logger.debug("lock acquired name={} holder={}", self.name, self.holder)

    def release(self) -> None:
        """Drop the lock if this holder still owns it."""

        with self._database.transaction() as session:
            row = session.get(AssemblyLockRow, self.name)
            if row is not None and row.holder == self.holder:
                session.delete(row)
        logger.debug("lock released name={} holder={}", self.name, self.holder)

    @contextmanager
    def held(self) -> Iterator[None]:
        """Hold the lock for the duration of a `with` block."""

        self.acquire()
        try:
            yield
        finally:
            self.release()
