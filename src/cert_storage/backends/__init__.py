"""Storage media for certificate records and locks.

``SQLiteBackend`` and ``MongoBackend`` need optional dependencies and are
imported from their own modules.
"""

from cert_storage.backends.base import Backend, StoredRecord
from cert_storage.backends.memory import InMemoryBackend

__all__ = ["Backend", "InMemoryBackend", "StoredRecord"]
