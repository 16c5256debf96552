"""
Sweep Single-Flight Guard

At most one sweep may run at a time. Inside one process an asyncio.Lock is
enough; across processes the guard also takes a PostgreSQL advisory lock
keyed on a fixed run identifier.
"""

import asyncio
import hashlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from sweep.exceptions import SweepAlreadyRunningError

logger = logging.getLogger(__name__)

SWEEP_RUN_KEY = "daily-sweep"


def advisory_lock_id(run_key: str) -> int:
    """Stable signed 64-bit key for pg advisory locks."""
    digest = hashlib.sha256(run_key.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


class PostgresAdvisoryLock:
    """
    Session-level pg_try_advisory_lock wrapper.

    The lock belongs to the backend connection that took it, so one
    connection is checked out of the pool on acquire and held until
    release. Lock and unlock always run on that same connection.
    """

    def __init__(self, engine: AsyncEngine, run_key: str = SWEEP_RUN_KEY):
        self.engine = engine
        self.lock_id = advisory_lock_id(run_key)
        self._conn: Optional[AsyncConnection] = None

    async def try_acquire(self) -> bool:
        conn = await self.engine.connect()
        try:
            result = await conn.execute(
                text("SELECT pg_try_advisory_lock(:lock_id)"),
                {"lock_id": self.lock_id}
            )
            acquired = bool(result.scalar())
            # session locks survive commit
            await conn.commit()
        except Exception:
            await conn.close()
            raise

        if not acquired:
            await conn.close()
            return False

        self._conn = conn
        return True

    async def release(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return

        try:
            await conn.execute(
                text("SELECT pg_advisory_unlock(:lock_id)"),
                {"lock_id": self.lock_id}
            )
            await conn.commit()
        finally:
            await conn.close()


class SweepRunGuard:
    """Rejects a second sweep while one is in flight."""

    def __init__(self, run_key: str = SWEEP_RUN_KEY):
        self.run_key = run_key
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def acquire(self, advisory_lock: Optional[PostgresAdvisoryLock] = None):
        """
        Hold the guard for the duration of a sweep.

        Raises:
            SweepAlreadyRunningError: Another sweep holds the guard
        """
        if self._lock.locked():
            raise SweepAlreadyRunningError(f"Sweep '{self.run_key}' is already running")

        await self._lock.acquire()
        try:
            if advisory_lock is not None and not await advisory_lock.try_acquire():
                raise SweepAlreadyRunningError(
                    f"Sweep '{self.run_key}' is already running in another process"
                )

            try:
                yield self
            finally:
                if advisory_lock is not None:
                    try:
                        await advisory_lock.release()
                    except Exception as e:
                        logger.error(f"Failed to release advisory lock for '{self.run_key}': {e}")
        finally:
            self._lock.release()


# Global guard instance
sweep_run_guard = SweepRunGuard()
