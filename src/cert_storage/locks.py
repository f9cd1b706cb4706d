"""LockManager — lease-based mutual exclusion across cooperating processes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from cert_storage._internal.clock import Clock, SystemClock
from cert_storage.backends.base import LockConflict
from cert_storage.exceptions import LockCancelledError, MediumError, ReleaseMismatchError

if TYPE_CHECKING:
    from cert_storage.backends.base import Backend

logger = logging.getLogger(__name__)

DEFAULT_LEASE_SECONDS = 60.0
DEFAULT_RETRY_INTERVAL = 2.0


@dataclass
class _LocalSlot:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0
    owner: asyncio.Task[Any] | None = None


class LockManager:
    """Grants one lease-based lock per key to a single holder at a time.

    Each key is either unlocked or locked by ``(holder, expires_at)``.  The
    only way in is the backend's atomic insert of a lock document; the only
    ways out are :meth:`release` by the recorded holder or the medium
    expiring the lease on its own.  A crashed holder therefore blocks a key
    for at most one lease.

    Waiters poll: on conflict they sleep ``retry_interval`` and try again.
    There is no queue, backoff or jitter, so no ordering between waiters is
    guaranteed.

    The holder identity cannot tell two tasks of the same process apart, so
    tasks in one process are additionally serialized per key with an
    :class:`asyncio.Lock`.

    Parameters:
        backend:        Medium holding the lock documents.
        instance_id:    Holder identity written into every lock document.
        lease_seconds:  How long an acquired lock stays valid.
        retry_interval: Seconds to wait between acquisition attempts.
        clock:          Source of ``expires_at`` timestamps.
    """

    def __init__(
        self,
        backend: Backend,
        *,
        instance_id: str,
        lease_seconds: float = DEFAULT_LEASE_SECONDS,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        clock: Clock | None = None,
    ) -> None:
        if not instance_id:
            raise ValueError("instance_id must be a non-empty string")
        if lease_seconds <= 0:
            raise ValueError("lease_seconds must be positive")
        if retry_interval <= 0:
            raise ValueError("retry_interval must be positive")
        self._backend = backend
        self._instance_id = instance_id
        self._lease = timedelta(seconds=lease_seconds)
        self._retry_interval = retry_interval
        self._clock = clock or SystemClock()
        self._local: dict[str, _LocalSlot] = {}

    @property
    def instance_id(self) -> str:
        return self._instance_id

    @property
    def lease_seconds(self) -> float:
        return self._lease.total_seconds()

    @property
    def retry_interval(self) -> float:
        return self._retry_interval

    def is_held_locally(self, key: str) -> bool:
        """Return ``True`` if a task of this manager currently holds *key*."""
        slot = self._local.get(key)
        return slot is not None and slot.lock.locked()

    # ── local slots ──────────────────────────────────────────

    def _enter(self, key: str) -> _LocalSlot:
        slot = self._local.get(key)
        if slot is None:
            slot = self._local[key] = _LocalSlot()
        slot.users += 1
        return slot

    def _leave(self, key: str, slot: _LocalSlot) -> None:
        slot.users -= 1
        if slot.users <= 0 and self._local.get(key) is slot:
            del self._local[key]

    # ── acquire ──────────────────────────────────────────────

    async def acquire(self, key: str, *, timeout: float | None = None) -> None:
        """Block until the lock on *key* is held by this instance.

        Raises:
            LockCancelledError: *timeout* seconds passed first.
            MediumError:        The medium failed; not retried.
        """
        deadline = None if timeout is None else asyncio.get_running_loop().time() + timeout
        slot = self._enter(key)
        scope = asyncio.timeout_at(deadline)
        try:
            async with scope:
                await slot.lock.acquire()
                try:
                    await self._acquire_lease(key)
                except BaseException:
                    slot.lock.release()
                    raise
                slot.owner = asyncio.current_task()
        except TimeoutError:
            self._leave(key, slot)
            if not scope.expired():
                raise
            logger.info("gave up waiting for lock %r after %ss", key, timeout)
            raise LockCancelledError(key, timeout) from None
        except BaseException:
            self._leave(key, slot)
            raise

    async def _acquire_lease(self, key: str) -> None:
        attempt = 0
        while True:
            attempt += 1
            expires_at = self._clock.now() + self._lease
            try:
                await self._try_insert(key, expires_at)
            except LockConflict:
                logger.debug(
                    "lock %r is held elsewhere, retrying in %ss (attempt %d)",
                    key,
                    self._retry_interval,
                    attempt,
                )
                await asyncio.sleep(self._retry_interval)
                continue
            logger.info("acquired lock %r as %r until %s", key, self._instance_id, expires_at)
            return

    async def _try_insert(self, key: str, expires_at: datetime) -> None:
        try:
            await self._backend.insert_lock(key, self._instance_id, expires_at)
        except asyncio.CancelledError:
            # The insert may still land after we stop waiting for it.
            await self._discard_attempt(key)
            raise

    async def _discard_attempt(self, key: str) -> None:
        try:
            await asyncio.shield(self._backend.delete_lock(key, self._instance_id))
        except MediumError as exc:
            logger.warning("could not clean up abandoned lock attempt on %r: %s", key, exc)

    # ── release ──────────────────────────────────────────────

    async def release(self, key: str) -> None:
        """Delete this instance's lock on *key*.

        Only a lock whose holder is this instance is removed; a lease that
        expired and was taken over by someone else is left alone.  Within
        the process, only the task that acquired the lock may release it.

        Raises:
            ReleaseMismatchError: No lock on *key* is held by this instance,
                                  or another local task holds it.
            MediumError:          The medium failed.
        """
        slot = self._local.get(key)
        if slot is not None and slot.lock.locked() and slot.owner is not asyncio.current_task():
            raise ReleaseMismatchError(key, self._instance_id)
        try:
            deleted = await self._backend.delete_lock(key, self._instance_id)
        finally:
            if slot is not None and slot.lock.locked():
                slot.owner = None
                slot.lock.release()
                self._leave(key, slot)
        if not deleted:
            raise ReleaseMismatchError(key, self._instance_id)
        logger.info("released lock %r", key)

    @asynccontextmanager
    async def hold(self, key: str, *, timeout: float | None = None) -> AsyncIterator[None]:
        """Hold the lock on *key* for the duration of the ``async with`` block.

        A lease that expired before the block finished is logged, not raised.
        """
        await self.acquire(key, timeout=timeout)
        try:
            yield
        finally:
            try:
                await self.release(key)
            except ReleaseMismatchError as exc:
                logger.warning("unlock failed: %s (lease may have expired)", exc)
