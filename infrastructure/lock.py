import asyncio
import logging
import time
from collections.abc import Callable

from config import LOCK_MAX_ATTEMPTS, LOCK_RETRY_DELAY_S, LOCK_STALE_MS
from domain.errors import LockTimeout

from .storage_keys import KeyedStorage, StorageKey

logger = logging.getLogger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class AdvisoryLock:
    """Cooperative lock stored as a millisecond timestamp under the lock key.

    Only well-behaved writers respect it. A holder older than ``stale_ms`` is
    considered abandoned and is taken over, which can lose the update of a
    holder that is merely slow.
    """

    def __init__(
        self,
        storage: KeyedStorage,
        *,
        stale_ms: int = LOCK_STALE_MS,
        retry_delay: float = LOCK_RETRY_DELAY_S,
        max_attempts: int = LOCK_MAX_ATTEMPTS,
        clock_ms: Callable[[], int] = _epoch_ms,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._storage = storage
        self._stale_ms = stale_ms
        self._retry_delay = retry_delay
        self._max_attempts = max_attempts
        self._clock_ms = clock_ms
        self._sleep = sleep
        self._token: str | None = None

    @property
    def held(self) -> bool:
        return self._token is not None

    def try_acquire(self) -> bool:
        now = self._clock_ms()
        holder = self._storage.get_int(StorageKey.LOCK)
        if holder is not None:
            age = now - holder
            if age < self._stale_ms:
                return False
            logger.warning("Reclaiming stale state lock held for %s ms", age)
        token = str(now)
        self._storage.set(StorageKey.LOCK, token)
        self._token = token
        return True

    def release(self) -> None:
        if self._token is None:
            return
        # A holder that reclaimed our stale lock owns the key now.
        if self._storage.get(StorageKey.LOCK) == self._token:
            self._storage.remove(StorageKey.LOCK)
        self._token = None

    def acquire(self) -> None:
        for _ in range(self._max_attempts):
            if self.try_acquire():
                return
            self._sleep(self._retry_delay)
        raise LockTimeout(self._max_attempts)

    async def acquire_async(self) -> None:
        for _ in range(self._max_attempts):
            if self.try_acquire():
                return
            await asyncio.sleep(self._retry_delay)
        raise LockTimeout(self._max_attempts)

    def __enter__(self) -> "AdvisoryLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
