from enum import Enum

from config import STORAGE_PREFIX
from storage.base import KeyValueStorage


class StorageKey(str, Enum):
    APP_STATE = "appstate"
    SEED_APPLIED = "seed.applied"
    LAST_OPENED_ISO = "lastOpenedISO"
    LOCK = "lock"
    DEV_MODE = "devMode"
    THEME = "theme"
    LOCALE = "locale"

    @property
    def full_key(self) -> str:
        return f"{STORAGE_PREFIX}{self.value}"


class KeyedStorage:
    """Typed access to every key the app keeps in a key-value backend."""

    def __init__(self, backend: KeyValueStorage):
        self._backend = backend

    @property
    def backend(self) -> KeyValueStorage:
        return self._backend

    def get(self, key: StorageKey) -> str | None:
        return self._backend.get_item(key.full_key)

    def set(self, key: StorageKey, value: str) -> None:
        self._backend.set_item(key.full_key, value)

    def remove(self, key: StorageKey) -> None:
        self._backend.remove_item(key.full_key)

    def remove_all(self) -> None:
        for key in StorageKey:
            self.remove(key)

    def get_flag(self, key: StorageKey) -> bool:
        return (self.get(key) or "").strip().lower() == "true"

    def set_flag(self, key: StorageKey, enabled: bool) -> None:
        self.set(key, "true" if enabled else "false")

    def get_int(self, key: StorageKey) -> int | None:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None
