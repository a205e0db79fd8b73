from __future__ import annotations

import json
import logging
import os
import tempfile
import threading

from domain.errors import StorageWriteFailure

from .base import KeyValueStorage

logger = logging.getLogger(__name__)


class JsonFileStorage(KeyValueStorage):
    """Key-value backend persisted as one JSON object in a file.

    The file is re-read on every access so separate instances (or processes)
    pointed at the same path observe each other's writes.
    """

    _path_locks: dict[str, threading.RLock] = {}
    _path_locks_guard = threading.Lock()

    def __init__(self, file_path: str = "budgeto.json") -> None:
        self._file_path = file_path
        abs_path = os.path.abspath(file_path)
        with self._path_locks_guard:
            if abs_path not in self._path_locks:
                self._path_locks[abs_path] = threading.RLock()
            self._lock = self._path_locks[abs_path]

    @property
    def file_path(self) -> str:
        return self._file_path

    def _load_data(self) -> dict[str, str]:
        with self._lock:
            try:
                with open(self._file_path, encoding="utf-8") as f:
                    data = json.load(f)
            except FileNotFoundError:
                return {}
            except json.JSONDecodeError:
                logger.warning(
                    "Failed to decode storage file %s, using empty storage",
                    self._file_path,
                )
                return {}
        if not isinstance(data, dict):
            logger.warning("Storage file %s has a non-object root, ignoring it", self._file_path)
            return {}
        return {str(key): str(value) for key, value in data.items() if value is not None}

    def _save_data(self, data: dict[str, str], key: str) -> None:
        with self._lock:
            directory = os.path.dirname(self._file_path) or "."
            try:
                os.makedirs(directory, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(prefix=".budgeto_", suffix=".json", dir=directory)
            except OSError as exc:
                raise StorageWriteFailure(key, str(exc)) from exc
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self._file_path)
            except OSError as exc:
                raise StorageWriteFailure(key, str(exc)) from exc
            finally:
                try:
                    if os.path.exists(tmp_path):
                        os.remove(tmp_path)
                except OSError:
                    logger.exception("Failed to cleanup temporary file during save: %s", tmp_path)

    def get_item(self, key: str) -> str | None:
        return self._load_data().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load_data()
            data[key] = str(value)
            self._save_data(data, key)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._load_data()
            if key not in data:
                return
            del data[key]
            self._save_data(data, key)

    def keys(self) -> list[str]:
        return list(self._load_data())
