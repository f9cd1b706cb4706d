"""Custom exceptions for the cert_storage package."""

from __future__ import annotations


class CertStorageError(Exception):
    """Base exception for all certificate storage errors."""


class NotFoundError(CertStorageError, FileNotFoundError):
    """Raised by ``load`` and ``stat`` when no record exists for a key.

    Also a :class:`FileNotFoundError`, so callers that already treat a
    missing file as a normal condition keep working.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Key '{key}' not found")


class MediumError(CertStorageError):
    """Raised when the underlying medium fails or is unreachable.

    The original driver exception is chained as ``__cause__``.
    """

    def __init__(self, operation: str, key: str = "", detail: str = "") -> None:
        self.operation = operation
        self.key = key
        msg = f"Medium error during '{operation}'"
        if key:
            msg += f" for key '{key}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class LockCancelledError(CertStorageError, TimeoutError):
    """Raised when a lock could not be acquired before the caller's deadline."""

    def __init__(self, key: str, timeout: float | None = None) -> None:
        self.key = key
        self.timeout = timeout
        msg = f"Timed out acquiring lock for key '{key}'"
        if timeout is not None:
            msg += f" after {timeout:g}s"
        super().__init__(msg)


class ReleaseMismatchError(CertStorageError):
    """Raised when no lock matching both key and holder exists on release.

    Usually the lease already expired (and may have been re-acquired by
    someone else).  Callers should log it and carry on.
    """

    def __init__(self, key: str, holder: str) -> None:
        self.key = key
        self.holder = holder
        super().__init__(f"No lock for key '{key}' held by '{holder}'")


class ConfigError(CertStorageError):
    """Raised when storage configuration is invalid."""
