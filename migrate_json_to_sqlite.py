from __future__ import annotations

import argparse
import sys
from pathlib import Path

from config import JSON_PATH, SQLITE_PATH, STORAGE_PREFIX
from domain.errors import DomainError
from infrastructure.state_store import AppStateStore
from infrastructure.storage_keys import StorageKey
from storage.json_storage import JsonFileStorage
from storage.sqlite_storage import SQLiteStorage


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Copy the Budgeto key-value store from a JSON file into SQLite."
    )
    parser.add_argument(
        "--json-path",
        default=JSON_PATH,
        help="Path to source JSON file (default: <project>/budgeto.json)",
    )
    parser.add_argument(
        "--sqlite-path",
        default=SQLITE_PATH,
        help="Path to target SQLite database (default: <project>/budgeto.db)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the source document without writing to SQLite",
    )
    return parser.parse_args(argv)


def _source_items(json_storage: JsonFileStorage) -> dict[str, str]:
    items = {}
    for key in json_storage.keys():
        if not key.startswith(STORAGE_PREFIX) or key == StorageKey.LOCK.full_key:
            continue
        value = json_storage.get_item(key)
        if value is not None:
            items[key] = value
    return items


def _validate_source(json_storage: JsonFileStorage) -> dict | None:
    # Raises CorruptStateError for an unreadable document.
    return AppStateStore(json_storage, dev_mode=False).load()


def run_dry_run(args: argparse.Namespace) -> int:
    print("== DRY RUN: JSON -> SQLite migration check ==")
    if not Path(args.json_path).exists():
        print(f"[error] JSON source not found: {args.json_path}")
        return 1
    json_storage = JsonFileStorage(args.json_path)
    try:
        document = _validate_source(json_storage)
        items = _source_items(json_storage)
    except DomainError as exc:
        print(f"[error] Dry-run failed: {exc}")
        return 1
    print(f"[ok] JSON source loaded: {args.json_path}")
    print(f"  keys: {len(items)}")
    if document is not None:
        print(f"  version: {document.get('version', 1)}")
        print(f"  fixedEntries: {len(document.get('fixedEntries') or [])}")
        print(f"  variableEntries: {len(document.get('variableEntries') or [])}")
    print("[dry-run] Nothing written")
    return 0


def run_migration(args: argparse.Namespace) -> int:
    print("== MIGRATION: JSON -> SQLite ==")
    if not Path(args.json_path).exists():
        print(f"[error] JSON source not found: {args.json_path}")
        return 1
    json_storage = JsonFileStorage(args.json_path)
    sqlite_storage = SQLiteStorage(args.sqlite_path)
    try:
        _validate_source(json_storage)
        items = _source_items(json_storage)
        print("[ok] Source document is readable")

        existing = [key for key in sqlite_storage.keys() if key.startswith(STORAGE_PREFIX)]
        if existing:
            print(f"[error] Target already holds {len(existing)} keys, migration skipped")
            return 1

        for key, value in items.items():
            sqlite_storage.set_item(key, value)
        print(f"[ok] Copied {len(items)} keys")
        print("[ok] Migration finished successfully")
        return 0
    except DomainError as exc:
        print(f"[error] Migration failed: {exc}")
        return 1
    finally:
        sqlite_storage.close()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.dry_run:
        return run_dry_run(args)
    return run_migration(args)


if __name__ == "__main__":
    sys.exit(main())
