"""CertificateStorage — the public facade over records and locks."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Any

from cert_storage.locks import DEFAULT_LEASE_SECONDS, DEFAULT_RETRY_INTERVAL, LockManager
from cert_storage.records import RecordStore

if TYPE_CHECKING:
    from types import TracebackType

    from cert_storage._internal.clock import Clock
    from cert_storage.backends.base import Backend
    from cert_storage.models import KeyInfo, Presence


class CertificateStorage:
    """Certificate persistence plus cross-process locking on one medium.

    Records and locks live in separate namespaces of the same backend and
    never touch each other: locking is cooperative, and the record methods
    work whether or not a lock is held.  The usual pattern is::

        async with storage.locked("example.com"):
            pem = await storage.load("certificates/example.com.crt")
            ...
            await storage.store("certificates/example.com.crt", new_pem)

    Parameters:
        backend:        Shared storage medium.
        instance_id:    Holder identity of this process in lock documents.
        lease_seconds:  Lock lease length.
        retry_interval: Seconds between lock acquisition attempts.
        clock:          Injectable clock for testing.
    """

    def __init__(
        self,
        backend: Backend,
        *,
        instance_id: str,
        lease_seconds: float = DEFAULT_LEASE_SECONDS,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        clock: Clock | None = None,
    ) -> None:
        self._backend = backend
        self._records = RecordStore(backend, clock=clock)
        self._locks = LockManager(
            backend,
            instance_id=instance_id,
            lease_seconds=lease_seconds,
            retry_interval=retry_interval,
            clock=clock,
        )

    @classmethod
    def from_mongo(cls, client: Any, database: str, **kwargs: Any) -> CertificateStorage:
        """Build a storage on a live ``pymongo.AsyncMongoClient``.

        Call :meth:`setup` once before use to create the lock indexes.
        """
        from cert_storage.backends.mongo import MongoBackend

        return cls(MongoBackend.from_client(client, database), **kwargs)

    # ── lifecycle ────────────────────────────────────────────

    async def setup(self) -> None:
        await self._backend.setup()

    async def close(self) -> None:
        await self._backend.close()

    async def __aenter__(self) -> CertificateStorage:
        await self.setup()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ── records ──────────────────────────────────────────────

    async def store(self, key: str, value: bytes) -> None:
        await self._records.store(key, value)

    async def load(self, key: str) -> bytes:
        return await self._records.load(key)

    async def delete(self, key: str) -> None:
        await self._records.delete(key)

    async def exists(self, key: str) -> bool:
        return await self._records.exists(key)

    async def probe(self, key: str) -> Presence:
        return await self._records.probe(key)

    async def list(self, prefix: str, recursive: bool = False) -> list[str]:
        return await self._records.list(prefix, recursive)

    async def stat(self, key: str) -> KeyInfo:
        return await self._records.stat(key)

    # ── locks ────────────────────────────────────────────────

    async def lock(self, key: str, *, timeout: float | None = None) -> None:
        await self._locks.acquire(key, timeout=timeout)

    async def unlock(self, key: str) -> None:
        await self._locks.release(key)

    def locked(self, key: str, *, timeout: float | None = None) -> AbstractAsyncContextManager[None]:
        return self._locks.hold(key, timeout=timeout)

    # ── introspection ────────────────────────────────────────

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def records(self) -> RecordStore:
        return self._records

    @property
    def locks(self) -> LockManager:
        return self._locks

    @property
    def instance_id(self) -> str:
        return self._locks.instance_id
