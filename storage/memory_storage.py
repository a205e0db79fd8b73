from __future__ import annotations

import threading

from domain.errors import StorageWriteFailure

from .base import KeyValueStorage


class MemoryStorage(KeyValueStorage):
    """In-process backend, optionally capped like a browser storage quota.

    ``quota_chars`` bounds the total length of all keys and values.
    """

    def __init__(self, initial: dict[str, str] | None = None, quota_chars: int | None = None):
        self._data: dict[str, str] = dict(initial or {})
        self._quota = quota_chars
        self._lock = threading.Lock()

    def _size_with(self, key: str, value: str) -> int:
        size = len(key) + len(value)
        for existing_key, existing_value in self._data.items():
            if existing_key != key:
                size += len(existing_key) + len(existing_value)
        return size

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        value = str(value)
        with self._lock:
            if self._quota is not None and self._size_with(key, value) > self._quota:
                raise StorageWriteFailure(key, "storage quota exceeded")
            self._data[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._data)
