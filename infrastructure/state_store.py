import asyncio
import json
import logging
import os
import threading
from collections.abc import Awaitable, Callable
from typing import TypeVar

from config import CURRENT_VERSION, DEV_MODE_ENV, STORAGE_PREFIX
from domain.categories import seed_categories
from domain.dates import (
    Clock,
    first_of_month,
    now_local,
    should_reset_variable_entries,
    to_iso,
)
from domain.errors import CorruptStateError
from domain.migrations import migrate_categories, migrate_document
from domain.state import AppState
from storage.base import KeyValueStorage
from utils.mock_data import MockData, generate_mock_data

from .lock import AdvisoryLock
from .serialization import category_to_dict, state_from_dict, state_to_dict
from .storage_keys import KeyedStorage, StorageKey

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


class AppStateStore:
    """Owner of the persisted app state document.

    Reads hand out private copies. Every mutation goes through ``with_lock``
    (or ``async_with_lock``), which serializes callers in this process and
    cooperates with other instances through the advisory lock key.
    """

    def __init__(
        self,
        backend: KeyValueStorage,
        *,
        clock: Clock | None = None,
        dev_mode: bool | None = None,
        mock_generator: Callable[..., MockData] = generate_mock_data,
        lock: AdvisoryLock | None = None,
    ):
        self._keys = KeyedStorage(backend)
        self._clock = clock
        self._dev_mode = dev_mode
        self._mock_generator = mock_generator
        self._lock = lock or AdvisoryLock(self._keys)
        self._thread_lock = threading.RLock()
        self._async_lock = asyncio.Lock()
        self._local = threading.local()
        self._async_owner: asyncio.Task | None = None

    @property
    def keys(self) -> KeyedStorage:
        return self._keys

    def now(self):
        return now_local(self._clock)

    # -- raw document -------------------------------------------------

    def load(self) -> dict | None:
        """Return the stored document exactly as persisted, or None if absent."""
        raw = self._keys.get(StorageKey.APP_STATE)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CorruptStateError(f"Stored app state is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CorruptStateError("Stored app state is not a JSON object")
        return data

    def save(self, state: AppState) -> None:
        payload = json.dumps(state_to_dict(state), ensure_ascii=False)
        self._keys.set(StorageKey.APP_STATE, payload)

    # -- lifecycle ----------------------------------------------------

    def is_dev_mode(self) -> bool:
        if self._dev_mode is not None:
            return self._dev_mode
        return _env_flag(DEV_MODE_ENV) or self._keys.get_flag(StorageKey.DEV_MODE)

    def set_dev_mode(self, enabled: bool) -> None:
        self._keys.set_flag(StorageKey.DEV_MODE, enabled)

    def create_initial_state(self) -> AppState:
        now = self.now()
        state = AppState(
            version=CURRENT_VERSION,
            categories=seed_categories(),
            last_reset_timestamp=first_of_month(now),
        )
        if self.is_dev_mode():
            mock = self._mock_generator(now=now)
            state.fixed_entries = list(mock.fixed_entries)
            state.variable_entries = list(mock.variable_entries)
            logger.info(
                "Dev mode: seeded %s fixed and %s variable mock entries",
                len(state.fixed_entries),
                len(state.variable_entries),
            )
        return state

    def _prepare(self, raw: dict | None) -> tuple[AppState, bool]:
        """Create or migrate the document and apply the monthly rollover."""
        if raw is None:
            logger.info("No stored app state, creating initial state")
            return self.create_initial_state(), True

        data, changed = migrate_document(raw)
        categories = data.get("categories")
        if isinstance(categories, list):
            migrated, categories_changed = migrate_categories(categories)
            if categories_changed:
                data = {**data, "categories": migrated}
                changed = True
        else:
            data = {**data, "categories": [category_to_dict(c) for c in seed_categories()]}
            changed = True

        state = state_from_dict(data)
        return state, self._apply_rollover(state) or changed

    def _apply_rollover(self, state: AppState) -> bool:
        now = self.now()
        if state.last_reset_timestamp is None:
            state.last_reset_timestamp = first_of_month(now)
            return True
        try:
            due = should_reset_variable_entries(state.last_reset_timestamp, now)
        except ValueError:
            logger.warning(
                "Invalid reset anchor %r, re-anchoring to the current month",
                state.last_reset_timestamp,
            )
            state.last_reset_timestamp = first_of_month(now)
            return True
        if not due:
            return False
        cleared = len(state.variable_entries)
        state.variable_entries = []
        state.last_reset_timestamp = first_of_month(now)
        logger.info(
            "Monthly reset: cleared %s variable entries, new anchor %s",
            cleared,
            state.last_reset_timestamp,
        )
        return True

    def load_initialized(self) -> AppState:
        """Load the state through init, migration and rollover, persisting changes."""
        with self._thread_lock:
            raw = self.load()
            state, changed = self._prepare(raw)
            if changed:
                self.save(state)
            if raw is None:
                self._keys.set_flag(StorageKey.SEED_APPLIED, True)
            self.touch_last_opened()
            return state

    def touch_last_opened(self) -> None:
        self._keys.set(StorageKey.LAST_OPENED_ISO, to_iso(self.now()))

    def last_opened(self) -> str | None:
        return self._keys.get(StorageKey.LAST_OPENED_ISO)

    def should_show_onboarding(self) -> bool:
        return not self._keys.get_flag(StorageKey.SEED_APPLIED)

    def complete_onboarding(self) -> None:
        self._keys.set_flag(StorageKey.SEED_APPLIED, True)

    def reset_all_data(self) -> None:
        """Remove every key of the app, preferences included."""
        with self._thread_lock:
            self._keys.remove_all()
            backend = self._keys.backend
            for key in backend.keys():
                if key.startswith(STORAGE_PREFIX):
                    backend.remove_item(key)
        logger.info("Full reset: all stored data removed")

    # -- mutation -----------------------------------------------------

    def _enter(self) -> None:
        if getattr(self._local, "active", False):
            raise RuntimeError("with_lock is not reentrant; mutate the state passed to the mutator")
        self._local.active = True

    def _exit(self) -> None:
        self._local.active = False

    def _run_mutation(self, mutator: Callable[[AppState], T]) -> T:
        state, _ = self._prepare(self.load())
        result = mutator(state)
        self.save(state)
        return result

    def with_lock(self, mutator: Callable[[AppState], T]) -> T:
        """Run ``mutator`` on a fresh copy of the state and persist it.

        The state is only saved when the mutator returns normally.
        """
        self._enter()
        try:
            with self._thread_lock:
                self._lock.acquire()
                try:
                    return self._run_mutation(mutator)
                finally:
                    self._lock.release()
        finally:
            self._exit()

    async def async_with_lock(self, mutator: Callable[[AppState], T | Awaitable[T]]) -> T:
        task = asyncio.current_task()
        if task is not None and task is self._async_owner:
            raise RuntimeError(
                "async_with_lock is not reentrant; mutate the state passed to the mutator"
            )
        async with self._async_lock:
            self._async_owner = task
            try:
                await self._lock.acquire_async()
                try:
                    state, _ = self._prepare(self.load())
                    result = mutator(state)
                    if asyncio.iscoroutine(result):
                        result = await result
                    self.save(state)
                    return result
                finally:
                    self._lock.release()
            finally:
                self._async_owner = None
