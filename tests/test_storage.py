"""Tests for the CertificateStorage facade."""

import pytest

from cert_storage import CertificateStorage, NotFoundError, Presence, ReleaseMismatchError


async def test_record_operations(storage):
    await storage.store("certificates/a/a.crt", b"crt")
    await storage.store("certificates/a/a.key", b"key")
    await storage.store("acme/account.json", b"{}")

    assert await storage.load("certificates/a/a.crt") == b"crt"
    assert await storage.exists("certificates/a/a.key")
    assert await storage.probe("missing") is Presence.ABSENT
    assert sorted(await storage.list("certificates/", recursive=True)) == [
        "certificates/a/a.crt",
        "certificates/a/a.key",
    ]
    assert (await storage.stat("acme/account.json")).size == 2

    await storage.delete("acme/account.json")
    await storage.delete("acme/account.json")
    with pytest.raises(NotFoundError):
        await storage.stat("acme/account.json")


async def test_lock_and_unlock(storage, backend):
    await storage.lock("example.com", timeout=1)
    assert backend.lock_holder("example.com") == "node-a"
    await storage.unlock("example.com")
    assert backend.lock_holder("example.com") is None


async def test_unlock_without_lock_raises(storage):
    with pytest.raises(ReleaseMismatchError):
        await storage.unlock("example.com")


async def test_locks_and_records_do_not_interact(storage):
    await storage.lock("example.com")
    assert not await storage.exists("example.com")
    assert await storage.list("") == []

    # locking is advisory: records stay writable by anyone
    other = CertificateStorage(storage.backend, instance_id="node-b")
    await other.store("example.com", b"pem")
    assert await storage.load("example.com") == b"pem"
    await storage.unlock("example.com")


async def test_renewal_flow(storage, backend):
    async with storage.locked("example.com", timeout=1):
        assert backend.lock_holder("example.com") == "node-a"
        await storage.store("certificates/example.com.crt", b"renewed")
    assert backend.lock_holder("example.com") is None
    assert await storage.load("certificates/example.com.crt") == b"renewed"


async def test_async_context_manager(backend, clock):
    async with CertificateStorage(backend, instance_id="node-a", clock=clock) as storage:
        await storage.store("k", b"v")
    assert (await backend.find_record("k")).value == b"v"


def test_exposes_components(storage):
    assert storage.instance_id == "node-a"
    assert storage.locks.instance_id == "node-a"
    assert storage.locks.retry_interval == 0.01
    assert storage.records is not None
