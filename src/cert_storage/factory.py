# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Backend factory for building storages from configuration.

Uses the Registry pattern to map type strings to backend builders,
allowing extensibility without modifying factory code.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, ClassVar

from cert_storage.backends.memory import InMemoryBackend
from cert_storage.config import BackendConfig, StorageConfig
from cert_storage.exceptions import ConfigError
from cert_storage.storage import CertificateStorage

if TYPE_CHECKING:
    from cert_storage._internal.clock import Clock
    from cert_storage.backends.base import Backend

BackendBuilder = Callable[[BackendConfig, "Clock | None"], "Backend"]


def _build_memory(config: BackendConfig, clock: Clock | None) -> Backend:
    return InMemoryBackend(clock=clock)


def _build_sqlite(config: BackendConfig, clock: Clock | None) -> Backend:
    if not config.path:
        raise ConfigError("sqlite backend requires 'path'")
    from cert_storage.backends.sqlite import SQLiteBackend

    return SQLiteBackend(config.path, clock=clock)


def _build_mongo(config: BackendConfig, clock: Clock | None) -> Backend:
    if not config.uri or not config.database:
        raise ConfigError("mongo backend requires 'uri' and 'database'")
    from cert_storage.backends.mongo import MongoBackend

    # expiry is enforced by the server's TTL index, not by a local clock
    return MongoBackend.from_uri(
        config.uri,
        config.database,
        records_collection=config.records_collection,
        locks_collection=config.locks_collection,
    )


class BackendFactory:
    """Creates backend instances from configuration.

    Example:
        factory = BackendFactory()
        backend = factory.create(BackendConfig(type="sqlite", path="certs.db"))
    """

    # Class-level registry mapping type strings to builders
    _registry: ClassVar[dict[str, BackendBuilder]] = {
        "memory": _build_memory,
        "sqlite": _build_sqlite,
        "mongo": _build_mongo,
    }

    @classmethod
    def register(cls, type_name: str, builder: BackendBuilder) -> None:
        """Register a custom backend type.

        Args:
            type_name: Type string to use in configuration
            builder: Callable taking ``(BackendConfig, clock)`` and returning a Backend

        Example:
            BackendFactory.register("redis", build_redis_backend)
        """
        cls._registry[type_name] = builder

    @classmethod
    def registered_types(cls) -> list[str]:
        """Return list of registered backend type names."""
        return list(cls._registry.keys())

    def create(self, config: BackendConfig, clock: Clock | None = None) -> Backend:
        """Create a backend from configuration.

        Raises:
            ConfigError: If the type is unknown or its settings are incomplete
        """
        builder = self._registry.get(config.type)
        if builder is None:
            available = ", ".join(sorted(self.registered_types()))
            raise ConfigError(f"Unknown backend type: '{config.type}'. Available types: {available}")
        return builder(config, clock)


def create_storage(config: StorageConfig, *, clock: Clock | None = None) -> CertificateStorage:
    """Build a :class:`CertificateStorage` from a validated configuration.

    The returned storage is not set up yet; use it as an async context
    manager or call :meth:`~CertificateStorage.setup` first.
    """
    backend = BackendFactory().create(config.backend, clock)
    return CertificateStorage(
        backend,
        instance_id=config.instance_id,
        lease_seconds=config.lease_seconds,
        retry_interval=config.retry_interval_seconds,
        clock=clock,
    )
