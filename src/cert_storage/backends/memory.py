"""InMemoryBackend — zero-config, dict-backed medium for development and testing."""

from __future__ import annotations

from datetime import datetime

from cert_storage._internal.clock import Clock, SystemClock
from cert_storage.backends.base import Backend, LockConflict, StoredRecord


class InMemoryBackend(Backend):
    """In-memory medium using plain dicts.  Data is lost on process exit.

    Several lock managers may share one instance to simulate cooperating
    processes.  Expired locks are dropped lazily whenever a lock is touched,
    using the injected clock, which stands in for the medium's own expiry
    sweep.

    Parameters:
        clock: Clock used to decide whether a lock has expired.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._records: dict[str, StoredRecord] = {}
        self._locks: dict[str, tuple[str, datetime]] = {}

    def _expire_locks(self) -> None:
        now = self._clock.now()
        expired = [k for k, (_, expires_at) in self._locks.items() if expires_at <= now]
        for key in expired:
            del self._locks[key]

    def lock_holder(self, key: str) -> str | None:
        """Return the holder of the live lock on *key*, if any."""
        self._expire_locks()
        entry = self._locks.get(key)
        return entry[0] if entry else None

    # ── records ──────────────────────────────────────────────

    async def upsert_record(self, key: str, value: bytes, modified_at: datetime) -> None:
        self._records[key] = StoredRecord(key=key, value=value, modified_at=modified_at)

    async def find_record(self, key: str) -> StoredRecord | None:
        return self._records.get(key)

    async def delete_record(self, key: str) -> int:
        return 1 if self._records.pop(key, None) is not None else 0

    async def count_records(self, key: str) -> int:
        return 1 if key in self._records else 0

    async def find_keys(self, prefix: str) -> list[str]:
        return [k for k in self._records if k.startswith(prefix)]

    # ── locks ────────────────────────────────────────────────

    async def insert_lock(self, key: str, holder: str, expires_at: datetime) -> None:
        self._expire_locks()
        if key in self._locks:
            raise LockConflict(key)
        self._locks[key] = (holder, expires_at)

    async def delete_lock(self, key: str, holder: str) -> int:
        self._expire_locks()
        entry = self._locks.get(key)
        if entry is None or entry[0] != holder:
            return 0
        del self._locks[key]
        return 1
