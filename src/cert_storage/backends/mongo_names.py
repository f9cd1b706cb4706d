"""Default MongoDB collection names, importable without pymongo."""

RECORDS_COLLECTION = "certificate-storage"
LOCKS_COLLECTION = "certificate-locks"
