"""cert_storage — pluggable persistence and locking for certificate management.

Records are flat key -> bytes blobs.  Locks are leases in a separate
namespace of the same medium, acquired by atomic insert and reclaimed by
the medium when they expire.
"""

from cert_storage.config import BackendConfig, StorageConfig
from cert_storage.exceptions import (
    CertStorageError,
    ConfigError,
    LockCancelledError,
    MediumError,
    NotFoundError,
    ReleaseMismatchError,
)
from cert_storage.factory import BackendFactory, create_storage
from cert_storage.locks import LockManager
from cert_storage.models import KeyInfo, Presence
from cert_storage.records import RecordStore
from cert_storage.storage import CertificateStorage

__all__ = [
    "BackendConfig",
    "BackendFactory",
    "CertStorageError",
    "CertificateStorage",
    "ConfigError",
    "KeyInfo",
    "LockCancelledError",
    "LockManager",
    "MediumError",
    "NotFoundError",
    "Presence",
    "RecordStore",
    "ReleaseMismatchError",
    "StorageConfig",
    "create_storage",
]
