# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Configuration schemas for building a certificate storage.

Example JSON::

    {
        "backend": {"type": "mongo", "uri": "mongodb://db:27017", "database": "certs"},
        "instance_id": "edge-01",
        "lease_seconds": 60
    }
"""

from __future__ import annotations

import secrets
import socket

from pydantic import BaseModel, Field

from cert_storage.backends.mongo_names import LOCKS_COLLECTION, RECORDS_COLLECTION


def default_instance_id() -> str:
    """Return ``<hostname>-<8 hex chars>``, unique per process start."""
    return f"{socket.gethostname()}-{secrets.token_hex(4)}"


class BackendConfig(BaseModel):
    """Storage medium configuration.

    Attributes:
        type: Backend type ("memory", "sqlite" or "mongo")
        path: Path to SQLite database file (for sqlite type)
        uri: MongoDB connection string (for mongo type)
        database: MongoDB database name (for mongo type)
        records_collection: Collection holding certificate records
        locks_collection: Collection holding lock documents
    """

    type: str = "memory"
    path: str = ""
    uri: str = ""
    database: str = ""
    records_collection: str = RECORDS_COLLECTION
    locks_collection: str = LOCKS_COLLECTION


class StorageConfig(BaseModel):
    """Complete configuration for a :class:`~cert_storage.storage.CertificateStorage`.

    Attributes:
        backend: Storage medium configuration
        instance_id: Holder identity used in lock documents
        lease_seconds: How long an acquired lock stays valid
        retry_interval_seconds: Delay between lock acquisition attempts
    """

    backend: BackendConfig = Field(default_factory=BackendConfig)
    instance_id: str = Field(default_factory=default_instance_id, min_length=1)
    lease_seconds: float = Field(default=60.0, gt=0)
    retry_interval_seconds: float = Field(default=2.0, gt=0)
