"""SQLiteBackend — durable, single-file medium using aiosqlite."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

try:
    import aiosqlite
except ImportError as exc:
    raise ImportError(
        "SQLiteBackend requires the 'aiosqlite' package. "
        "Install it with: pip install cert-storage[sqlite]"
    ) from exc

from cert_storage._internal.clock import Clock, SystemClock, as_utc
from cert_storage.backends.base import Backend, LockConflict, StoredRecord
from cert_storage.exceptions import MediumError

_CREATE_RECORDS = """
CREATE TABLE IF NOT EXISTS certificate_storage (
    key   TEXT PRIMARY KEY,
    value BLOB NOT NULL,
    ts    TEXT NOT NULL
)
"""

_CREATE_LOCKS = """
CREATE TABLE IF NOT EXISTS certificate_locks (
    key        TEXT PRIMARY KEY,
    instance   TEXT NOT NULL,
    expires_at REAL NOT NULL
)
"""


class SQLiteBackend(Backend):
    """Persistent medium backed by a single SQLite file.

    Several processes may point at the same file.  The primary key on
    ``certificate_locks.key`` provides the unique insert; expired lock
    rows are purged in the same transaction as each insert attempt, so
    expiry needs no background job.

    Parameters:
        db_path: Path to the SQLite database file.  Use ``":memory:"``
                 for an in-memory database (useful for testing).
        clock:   Clock used to decide whether a lock has expired.
    """

    def __init__(self, db_path: str = "cert_storage.db", clock: Clock | None = None) -> None:
        self._db_path = db_path
        self._clock = clock or SystemClock()
        self._db: aiosqlite.Connection | None = None

    async def _connect(self) -> aiosqlite.Connection:
        if self._db is None:
            self._db = await aiosqlite.connect(self._db_path)
            await self._db.execute(_CREATE_RECORDS)
            await self._db.execute(_CREATE_LOCKS)
            await self._db.commit()
        return self._db

    @asynccontextmanager
    async def _translate(self, operation: str, key: str = "") -> AsyncIterator[None]:
        try:
            yield
        except aiosqlite.Error as exc:
            raise MediumError(operation, key, str(exc)) from exc

    async def setup(self) -> None:
        async with self._translate("setup"):
            await self._connect()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    # ── records ──────────────────────────────────────────────

    async def upsert_record(self, key: str, value: bytes, modified_at: datetime) -> None:
        async with self._translate("store", key):
            db = await self._connect()
            await db.execute(
                "INSERT OR REPLACE INTO certificate_storage (key, value, ts) VALUES (?, ?, ?)",
                (key, value, modified_at.isoformat()),
            )
            await db.commit()

    async def find_record(self, key: str) -> StoredRecord | None:
        async with self._translate("load", key):
            db = await self._connect()
            cursor = await db.execute(
                "SELECT value, ts FROM certificate_storage WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return StoredRecord(
            key=key,
            value=bytes(row[0]),
            modified_at=as_utc(datetime.fromisoformat(row[1])),
        )

    async def delete_record(self, key: str) -> int:
        async with self._translate("delete", key):
            db = await self._connect()
            cursor = await db.execute("DELETE FROM certificate_storage WHERE key = ?", (key,))
            await db.commit()
        return cursor.rowcount

    async def count_records(self, key: str) -> int:
        async with self._translate("exists", key):
            db = await self._connect()
            cursor = await db.execute(
                "SELECT COUNT(*) FROM certificate_storage WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def find_keys(self, prefix: str) -> list[str]:
        async with self._translate("list", prefix):
            db = await self._connect()
            # substr() instead of LIKE so '%' and '_' in the prefix match literally
            cursor = await db.execute(
                "SELECT key FROM certificate_storage WHERE substr(key, 1, ?) = ?",
                (len(prefix), prefix),
            )
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    # ── locks ────────────────────────────────────────────────

    async def insert_lock(self, key: str, holder: str, expires_at: datetime) -> None:
        async with self._translate("lock", key):
            db = await self._connect()
            now = self._clock.now().timestamp()
            try:
                await db.execute("DELETE FROM certificate_locks WHERE expires_at <= ?", (now,))
                await db.execute(
                    "INSERT INTO certificate_locks (key, instance, expires_at) VALUES (?, ?, ?)",
                    (key, holder, expires_at.timestamp()),
                )
            except aiosqlite.IntegrityError:
                await db.rollback()
                raise LockConflict(key) from None
            except BaseException:
                await db.rollback()
                raise
            await db.commit()

    async def delete_lock(self, key: str, holder: str) -> int:
        async with self._translate("unlock", key):
            db = await self._connect()
            cursor = await db.execute(
                "DELETE FROM certificate_locks WHERE key = ? AND instance = ? AND expires_at > ?",
                (key, holder, self._clock.now().timestamp()),
            )
            await db.commit()
        return cursor.rowcount
