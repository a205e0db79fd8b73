import asyncio

import pytest

from domain.errors import LockTimeout
from infrastructure.lock import AdvisoryLock
from infrastructure.storage_keys import KeyedStorage, StorageKey
from storage import MemoryStorage


class FakeClock:
    def __init__(self, start: int = 1_000_000):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> int:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += int(seconds * 1000)


def _lock(keys: KeyedStorage, clock: FakeClock) -> AdvisoryLock:
    return AdvisoryLock(keys, clock_ms=clock, sleep=clock.sleep)


class TestAdvisoryLock:
    def test_acquire_and_release(self):
        keys = KeyedStorage(MemoryStorage())
        clock = FakeClock()
        lock = _lock(keys, clock)

        lock.acquire()
        assert lock.held
        assert keys.get(StorageKey.LOCK) == str(clock.now)
        lock.release()
        assert not lock.held
        assert keys.get(StorageKey.LOCK) is None

    def test_lock_key_is_prefixed(self):
        backend = MemoryStorage()
        with _lock(KeyedStorage(backend), FakeClock()):
            assert backend.keys() == ["budgeto.lock"]
        assert backend.keys() == []

    def test_fresh_foreign_lock_times_out(self):
        keys = KeyedStorage(MemoryStorage())
        clock = FakeClock()
        keys.set(StorageKey.LOCK, str(clock.now))
        lock = AdvisoryLock(keys, clock_ms=lambda: clock.now, sleep=clock.sleeps.append)

        with pytest.raises(LockTimeout, match="after 10 attempts"):
            lock.acquire()
        assert clock.sleeps == [0.05] * 10
        assert keys.get(StorageKey.LOCK) == str(clock.now)

    def test_stale_lock_is_reclaimed(self):
        keys = KeyedStorage(MemoryStorage())
        clock = FakeClock()
        keys.set(StorageKey.LOCK, str(clock.now - 5000))
        lock = _lock(keys, clock)

        lock.acquire()
        assert lock.held
        assert clock.sleeps == []

    def test_lock_expires_while_waiting(self):
        keys = KeyedStorage(MemoryStorage())
        clock = FakeClock()
        keys.set(StorageKey.LOCK, str(clock.now - 4900))
        lock = _lock(keys, clock)

        lock.acquire()
        assert lock.held
        assert len(clock.sleeps) == 2

    def test_release_leaves_a_reclaimed_lock_alone(self):
        keys = KeyedStorage(MemoryStorage())
        clock = FakeClock()
        lock = _lock(keys, clock)
        lock.acquire()
        keys.set(StorageKey.LOCK, "999999999")

        lock.release()
        assert keys.get(StorageKey.LOCK) == "999999999"

    def test_garbage_lock_value_is_ignored(self):
        keys = KeyedStorage(MemoryStorage())
        keys.set(StorageKey.LOCK, "not-a-number")
        lock = _lock(keys, FakeClock())
        assert lock.try_acquire()

    def test_async_acquire(self):
        keys = KeyedStorage(MemoryStorage())
        lock = AdvisoryLock(keys, retry_delay=0)

        async def scenario():
            await lock.acquire_async()
            held = lock.held
            lock.release()
            return held

        assert asyncio.run(scenario()) is True
        assert keys.get(StorageKey.LOCK) is None

    def test_async_timeout(self):
        keys = KeyedStorage(MemoryStorage())
        keys.set(StorageKey.LOCK, "5000")
        lock = AdvisoryLock(keys, retry_delay=0, max_attempts=3, clock_ms=lambda: 5001)

        with pytest.raises(LockTimeout, match="after 3 attempts"):
            asyncio.run(lock.acquire_async())


class TestKeyedStorage:
    def test_flags_and_ints(self):
        keys = KeyedStorage(MemoryStorage())
        assert keys.get_flag(StorageKey.DEV_MODE) is False
        keys.set_flag(StorageKey.DEV_MODE, True)
        assert keys.get_flag(StorageKey.DEV_MODE) is True
        assert keys.backend.get_item("budgeto.devMode") == "true"
        assert keys.get_int(StorageKey.LOCK) is None

    def test_remove_all_only_touches_known_keys(self):
        backend = MemoryStorage({"budgeto.theme": "dark", "unrelated": "1"})
        KeyedStorage(backend).remove_all()
        assert backend.keys() == ["unrelated"]
