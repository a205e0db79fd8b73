from __future__ import annotations

from argparse import Namespace
from pathlib import Path

from backup import create_backup
from config import JSON_PATH, SQLITE_PATH, STORAGE_PREFIX, USE_SQLITE
from infrastructure.state_store import AppStateStore
from migrate_json_to_sqlite import run_migration
from storage.base import KeyValueStorage
from storage.json_storage import JsonFileStorage
from storage.sqlite_storage import SQLiteStorage


def _sqlite_has_data(sqlite_path: str) -> bool:
    storage = SQLiteStorage(sqlite_path)
    try:
        return any(key.startswith(STORAGE_PREFIX) for key in storage.keys())
    finally:
        storage.close()


def select_backend(
    use_sqlite: bool = USE_SQLITE,
    json_path: str = JSON_PATH,
    sqlite_path: str = SQLITE_PATH,
) -> KeyValueStorage:
    json_exists = Path(json_path).exists()
    if json_exists:
        create_backup(json_path)

    if not use_sqlite:
        print("[bootstrap] Storage selected: JSON")
        return JsonFileStorage(json_path)

    print("[bootstrap] Storage selected: SQLite")
    db_has_data = _sqlite_has_data(sqlite_path)
    if not db_has_data and json_exists:
        print("[bootstrap] SQLite empty, starting one-time migration from JSON")
        code = run_migration(
            Namespace(json_path=json_path, sqlite_path=sqlite_path, dry_run=False)
        )
        if code != 0:
            raise RuntimeError("Migration of the JSON store to SQLite failed")
    elif db_has_data:
        print("[bootstrap] SQLite already has data, migration skipped")
    else:
        print("[bootstrap] JSON source file not found, migration skipped")
    return SQLiteStorage(sqlite_path)


def bootstrap_store(
    use_sqlite: bool = USE_SQLITE,
    json_path: str = JSON_PATH,
    sqlite_path: str = SQLITE_PATH,
    dev_mode: bool | None = None,
) -> AppStateStore:
    """Open the configured backend and bring the stored state up to date."""
    backend = select_backend(use_sqlite, json_path, sqlite_path)
    store = AppStateStore(backend, dev_mode=dev_mode)
    raw = store.load()
    state = store.load_initialized()
    if raw is None:
        print("[bootstrap] Initial state created")
    elif raw.get("version") != state.version:
        print(f"[bootstrap] State migrated from v{raw.get('version', 1)} to v{state.version}")
    print(
        f"[bootstrap] Ready: {len(state.fixed_entries)} fixed, "
        f"{len(state.variable_entries)} variable entries"
    )
    return store
