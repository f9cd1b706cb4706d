"""Backend protocol — the storage medium shared by records and locks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StoredRecord:
    """A record as persisted by a backend."""

    key: str
    value: bytes
    modified_at: datetime


class LockConflict(Exception):
    """A live lock already exists for the key.

    Internal signal between a backend and the lock manager; it is retried
    and never surfaced to callers.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(key)


class Backend(ABC):
    """Abstract base for all storage media.

    A backend holds two disjoint namespaces: *records* (key -> bytes plus a
    modification time) and *locks* (key -> holder plus expiry).  The only
    primitives the lock manager relies on are an atomic insert that fails
    with :class:`LockConflict` when a live lock exists, a delete filtered by
    key **and** holder, and passive expiry of locks whose ``expires_at`` has
    passed.  How expiry happens is up to the medium.

    Implementations translate their driver's errors into
    :class:`~cert_storage.exceptions.MediumError`.
    """

    async def setup(self) -> None:
        """Provision collections/tables and indexes.  Default: nothing."""

    async def close(self) -> None:
        """Release any connection held by the backend.  Default: nothing."""

    # ── records ──────────────────────────────────────────────

    @abstractmethod
    async def upsert_record(self, key: str, value: bytes, modified_at: datetime) -> None:
        """Create or overwrite the record for *key*."""
        ...

    @abstractmethod
    async def find_record(self, key: str) -> StoredRecord | None:
        """Return the record, or ``None`` if not found."""
        ...

    @abstractmethod
    async def delete_record(self, key: str) -> int:
        """Delete the record and return how many were removed (0 or 1)."""
        ...

    @abstractmethod
    async def count_records(self, key: str) -> int:
        """Return the number of records stored under *key*."""
        ...

    @abstractmethod
    async def find_keys(self, prefix: str) -> list[str]:
        """Return all record keys starting with the literal *prefix*."""
        ...

    # ── locks ────────────────────────────────────────────────

    @abstractmethod
    async def insert_lock(self, key: str, holder: str, expires_at: datetime) -> None:
        """Atomically insert a lock, raising :class:`LockConflict` if one is live."""
        ...

    @abstractmethod
    async def delete_lock(self, key: str, holder: str) -> int:
        """Delete the live lock owned by *holder* and return how many were removed.

        A lease past its ``expires_at`` counts as gone.  Media that expire
        in the background (MongoDB's TTL monitor) may still match such a
        lease until the next sweep.
        """
        ...
