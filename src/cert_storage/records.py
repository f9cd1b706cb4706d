"""RecordStore — keyed byte-blob persistence for certificates and keys."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cert_storage._internal.clock import Clock, SystemClock
from cert_storage.exceptions import MediumError, NotFoundError
from cert_storage.models import KeyInfo, Presence

if TYPE_CHECKING:
    from cert_storage.backends.base import Backend

logger = logging.getLogger(__name__)


class RecordStore:
    """Maps string keys to byte values plus a last-modified timestamp.

    There is no versioning: concurrent writers to the same key race and
    the last write wins.  Coordinate through :class:`~cert_storage.locks.LockManager`
    when that matters.

    Parameters:
        backend: Medium holding the records.
        clock:   Source of ``modified_at`` timestamps.
    """

    def __init__(self, backend: Backend, clock: Clock | None = None) -> None:
        self._backend = backend
        self._clock = clock or SystemClock()

    async def store(self, key: str, value: bytes) -> None:
        """Create or overwrite the record for *key*."""
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"value must be bytes, not {type(value).__name__}")
        await self._backend.upsert_record(key, bytes(value), self._clock.now())

    async def load(self, key: str) -> bytes:
        """Return the stored value.  Raises :class:`NotFoundError` if absent."""
        record = await self._backend.find_record(key)
        if record is None:
            raise NotFoundError(key)
        return record.value

    async def delete(self, key: str) -> None:
        """Delete the record.  No-op if the key does not exist."""
        deleted = await self._backend.delete_record(key)
        if not deleted:
            logger.debug("delete of absent key %r ignored", key)

    async def probe(self, key: str) -> Presence:
        """Check for *key*, distinguishing "absent" from "could not check"."""
        try:
            count = await self._backend.count_records(key)
        except MediumError as exc:
            logger.warning("existence check for %r failed: %s", key, exc)
            return Presence.UNKNOWN
        return Presence.PRESENT if count > 0 else Presence.ABSENT

    async def exists(self, key: str) -> bool:
        """Return ``True`` only if *key* is known to exist.

        Medium failures are swallowed and reported as ``False``, so a
        ``False`` result means "absent **or** unknown".  Use :meth:`probe`
        when the difference matters.
        """
        return await self.probe(key) is Presence.PRESENT

    async def list(self, prefix: str, recursive: bool = False) -> list[str]:
        """Return every key that starts with *prefix*.

        The keyspace is flat, so *recursive* is accepted for interface
        compatibility and has no effect.
        """
        return await self._backend.find_keys(prefix)

    async def stat(self, key: str) -> KeyInfo:
        """Return metadata for *key*.  Raises :class:`NotFoundError` if absent."""
        record = await self._backend.find_record(key)
        if record is None:
            raise NotFoundError(key)
        return KeyInfo(key=key, modified=record.modified_at, size=len(record.value))
