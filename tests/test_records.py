"""Tests for RecordStore."""

import pytest

from cert_storage import KeyInfo, NotFoundError, Presence, RecordStore
from cert_storage.exceptions import MediumError


@pytest.fixture
def records(backend, clock):
    return RecordStore(backend, clock=clock)


async def test_store_and_load(records):
    pem = b"-----BEGIN CERTIFICATE-----\n\x00\xff\n"
    await records.store("certificates/example.com.crt", pem)
    assert await records.load("certificates/example.com.crt") == pem


async def test_load_missing_raises_not_found(records):
    with pytest.raises(NotFoundError) as exc_info:
        await records.load("nope")
    assert exc_info.value.key == "nope"


async def test_not_found_is_a_file_not_found_error(records):
    with pytest.raises(FileNotFoundError):
        await records.load("nope")


async def test_last_write_wins(records):
    await records.store("k", b"first")
    await records.store("k", b"second")
    assert await records.load("k") == b"second"


async def test_store_rejects_text(records):
    with pytest.raises(TypeError):
        await records.store("k", "not bytes")


async def test_store_accepts_bytearray(records):
    await records.store("k", bytearray(b"abc"))
    assert await records.load("k") == b"abc"


async def test_delete(records):
    await records.store("k", b"v")
    await records.delete("k")
    with pytest.raises(NotFoundError):
        await records.load("k")


async def test_delete_is_idempotent(records):
    await records.store("k", b"v")
    await records.delete("k")
    await records.delete("k")  # should not raise


async def test_exists(records):
    assert not await records.exists("k")
    await records.store("k", b"")
    assert await records.exists("k")


async def test_probe(records):
    assert await records.probe("k") is Presence.ABSENT
    await records.store("k", b"v")
    assert await records.probe("k") is Presence.PRESENT


async def test_exists_swallows_medium_errors(failing_backend, clock):
    records = RecordStore(failing_backend, clock=clock)
    assert await records.exists("k") is False
    assert await records.probe("k") is Presence.UNKNOWN


async def test_other_operations_propagate_medium_errors(failing_backend, clock):
    records = RecordStore(failing_backend, clock=clock)
    with pytest.raises(MediumError):
        await records.store("k", b"v")
    with pytest.raises(MediumError):
        await records.load("k")
    with pytest.raises(MediumError):
        await records.delete("k")
    with pytest.raises(MediumError):
        await records.list("k")


async def test_list_prefix(records):
    for key in ("a/1", "a/2", "b/1"):
        await records.store(key, b"")
    assert sorted(await records.list("a")) == ["a/1", "a/2"]


async def test_list_recursive_flag_has_no_effect(records):
    for key in ("a/1", "a/b/2"):
        await records.store(key, b"")
    flat = sorted(await records.list("a/", recursive=False))
    deep = sorted(await records.list("a/", recursive=True))
    assert flat == deep == ["a/1", "a/b/2"]


async def test_list_empty(records):
    assert await records.list("x") == []


async def test_stat(records, clock):
    await records.store("k", b"12345")
    info = await records.stat("k")
    assert info == KeyInfo(key="k", modified=clock.now(), size=5, is_terminal=True)


async def test_stat_tracks_latest_write(records, clock):
    await records.store("k", b"1")
    clock.advance(30)
    await records.store("k", b"22")
    info = await records.stat("k")
    assert info.modified == clock.now()
    assert info.size == 2


async def test_stat_missing_raises_not_found(records):
    with pytest.raises(NotFoundError):
        await records.stat("nope")
