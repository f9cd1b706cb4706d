"""Tests for the backend factory."""

import pytest

from cert_storage import BackendConfig, BackendFactory, ConfigError, StorageConfig, create_storage
from cert_storage.backends import InMemoryBackend


class TestBackendFactory:
    """Tests for BackendFactory."""

    def test_registered_types(self):
        types = BackendFactory.registered_types()
        assert {"memory", "sqlite", "mongo"} <= set(types)

    def test_create_memory(self):
        backend = BackendFactory().create(BackendConfig(type="memory"))
        assert isinstance(backend, InMemoryBackend)

    def test_create_sqlite(self, tmp_path):
        pytest.importorskip("aiosqlite")
        from cert_storage.backends.sqlite import SQLiteBackend

        backend = BackendFactory().create(BackendConfig(type="sqlite", path=str(tmp_path / "c.db")))
        assert isinstance(backend, SQLiteBackend)

    def test_sqlite_requires_path(self):
        with pytest.raises(ConfigError):
            BackendFactory().create(BackendConfig(type="sqlite"))

    def test_mongo_requires_uri_and_database(self):
        with pytest.raises(ConfigError):
            BackendFactory().create(BackendConfig(type="mongo", uri="mongodb://localhost"))

    def test_unknown_type_raises_error(self):
        with pytest.raises(ConfigError) as exc_info:
            BackendFactory().create(BackendConfig(type="etcd"))
        assert "Unknown backend type: 'etcd'" in str(exc_info.value)
        assert "memory" in str(exc_info.value)

    def test_register_custom_type(self, monkeypatch):
        monkeypatch.setattr(BackendFactory, "_registry", dict(BackendFactory._registry))
        sentinel = InMemoryBackend()
        BackendFactory.register("custom", lambda config, clock: sentinel)
        assert BackendFactory().create(BackendConfig(type="custom")) is sentinel


async def test_create_storage(clock):
    config = StorageConfig(instance_id="edge-01", lease_seconds=30, retry_interval_seconds=0.5)
    async with create_storage(config, clock=clock) as storage:
        assert storage.instance_id == "edge-01"
        assert storage.locks.lease_seconds == 30
        assert storage.locks.retry_interval == 0.5
        await storage.lock("k")
        await storage.unlock("k")


async def test_create_sqlite_storage(tmp_path, clock):
    pytest.importorskip("aiosqlite")
    config = StorageConfig(
        backend=BackendConfig(type="sqlite", path=str(tmp_path / "certs.db")),
        instance_id="edge-01",
    )
    async with create_storage(config, clock=clock) as storage:
        await storage.store("k", b"v")
        assert await storage.load("k") == b"v"
