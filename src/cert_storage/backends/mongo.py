"""MongoBackend — shared medium on MongoDB via pymongo's asyncio API."""

from __future__ import annotations

import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

try:
    from pymongo import ASCENDING, AsyncMongoClient, IndexModel
    from pymongo.errors import DuplicateKeyError, PyMongoError
except ImportError as exc:
    raise ImportError(
        "MongoBackend requires the 'pymongo' package (4.9 or newer). "
        "Install it with: pip install cert-storage[mongo]"
    ) from exc

from cert_storage._internal.clock import as_utc
from cert_storage.backends.base import Backend, LockConflict, StoredRecord
from cert_storage.backends.mongo_names import LOCKS_COLLECTION, RECORDS_COLLECTION
from cert_storage.exceptions import MediumError


class MongoBackend(Backend):
    """Medium backed by two collections in one MongoDB database.

    ``certificate-storage`` holds ``{key, value, ts}`` documents and
    ``certificate-locks`` holds ``{key, instance, expires_at}`` documents.
    The unique index on ``locks.key`` is what makes lock acquisition
    mutually exclusive; the TTL index on ``locks.expires_at`` (zero grace)
    lets the server reap expired leases.  The TTL monitor runs about once a
    minute, so a crashed holder's lock may outlive its lease by that much.

    Parameters:
        database:           A pymongo ``AsyncDatabase``.
        records_collection: Name of the record collection.
        locks_collection:   Name of the lock collection.
        client:             Client to close on :meth:`close`.  Only pass it
                            when the backend owns the connection.
    """

    def __init__(
        self,
        database: Any,
        *,
        records_collection: str = RECORDS_COLLECTION,
        locks_collection: str = LOCKS_COLLECTION,
        client: AsyncMongoClient | None = None,
    ) -> None:
        self._records = database[records_collection]
        self._locks = database[locks_collection]
        self._client = client

    @classmethod
    def from_client(cls, client: AsyncMongoClient, database: str, **kwargs: Any) -> MongoBackend:
        """Build a backend on a caller-managed client (not closed by :meth:`close`)."""
        return cls(client[database], **kwargs)

    @classmethod
    def from_uri(cls, uri: str, database: str, **kwargs: Any) -> MongoBackend:
        """Build a backend that owns its own client."""
        client: AsyncMongoClient = AsyncMongoClient(uri)
        return cls(client[database], client=client, **kwargs)

    @asynccontextmanager
    async def _translate(self, operation: str, key: str = "") -> AsyncIterator[None]:
        try:
            yield
        except PyMongoError as exc:
            raise MediumError(operation, key, str(exc)) from exc

    async def setup(self) -> None:
        async with self._translate("setup"):
            await self._locks.create_indexes(
                [
                    IndexModel([("key", ASCENDING)], unique=True),
                    IndexModel([("expires_at", ASCENDING)], expireAfterSeconds=0),
                ]
            )
            await self._records.create_indexes([IndexModel([("key", ASCENDING)], unique=True)])

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    # ── records ──────────────────────────────────────────────

    async def upsert_record(self, key: str, value: bytes, modified_at: datetime) -> None:
        async with self._translate("store", key):
            await self._records.update_one(
                {"key": key},
                {"$set": {"key": key, "value": value, "ts": modified_at}},
                upsert=True,
            )

    async def find_record(self, key: str) -> StoredRecord | None:
        async with self._translate("load", key):
            doc = await self._records.find_one({"key": key})
        if doc is None:
            return None
        return StoredRecord(key=key, value=bytes(doc["value"]), modified_at=as_utc(doc["ts"]))

    async def delete_record(self, key: str) -> int:
        async with self._translate("delete", key):
            result = await self._records.delete_one({"key": key})
        return result.deleted_count

    async def count_records(self, key: str) -> int:
        async with self._translate("exists", key):
            return await self._records.count_documents({"key": key})

    async def find_keys(self, prefix: str) -> list[str]:
        keys: list[str] = []
        async with self._translate("list", prefix):
            cursor = self._records.find(
                {"key": {"$regex": "^" + re.escape(prefix)}},
                {"key": 1, "_id": 0},
            )
            async for doc in cursor:
                keys.append(doc["key"])
        return keys

    # ── locks ────────────────────────────────────────────────

    async def insert_lock(self, key: str, holder: str, expires_at: datetime) -> None:
        async with self._translate("lock", key):
            try:
                await self._locks.insert_one(
                    {"key": key, "instance": holder, "expires_at": expires_at}
                )
            except DuplicateKeyError:
                raise LockConflict(key) from None

    async def delete_lock(self, key: str, holder: str) -> int:
        async with self._translate("unlock", key):
            result = await self._locks.delete_one({"key": key, "instance": holder})
        return result.deleted_count
