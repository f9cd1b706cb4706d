"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta

import pytest

from cert_storage import CertificateStorage
from cert_storage.backends import InMemoryBackend
from cert_storage.exceptions import MediumError


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self._now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)


class FailingBackend(InMemoryBackend):
    """Memory backend whose every medium call fails, as if unreachable."""

    async def upsert_record(self, key, value, modified_at):
        raise MediumError("store", key, "connection refused")

    async def find_record(self, key):
        raise MediumError("load", key, "connection refused")

    async def delete_record(self, key):
        raise MediumError("delete", key, "connection refused")

    async def count_records(self, key):
        raise MediumError("exists", key, "connection refused")

    async def find_keys(self, prefix):
        raise MediumError("list", prefix, "connection refused")

    async def insert_lock(self, key, holder, expires_at):
        raise MediumError("lock", key, "connection refused")

    async def delete_lock(self, key, holder):
        raise MediumError("unlock", key, "connection refused")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    return InMemoryBackend(clock=clock)


@pytest.fixture
def failing_backend(clock):
    return FailingBackend(clock=clock)


@pytest.fixture
def storage(backend, clock):
    return CertificateStorage(backend, instance_id="node-a", retry_interval=0.01, clock=clock)
