from __future__ import annotations

import json
import shutil
from datetime import datetime
from pathlib import Path

from domain.dates import to_iso
from domain.state import AppState
from infrastructure.serialization import entry_to_dict

EXPORT_VERSION = 1


def create_backup(json_path: str) -> str | None:
    source = Path(json_path)
    if not source.exists():
        return None
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_dir = source.parent / "backups"
    backup_dir.mkdir(exist_ok=True)
    backup_path = backup_dir / f"{source.stem}_backup_{stamp}{source.suffix}"
    shutil.copy2(source, backup_path)
    print(f"[backup] JSON backup created: {backup_path}")
    return str(backup_path)


def build_export_payload(state: AppState, exported_at: datetime | None = None) -> dict:
    return {
        "version": EXPORT_VERSION,
        "exportedAt": to_iso(exported_at or datetime.now().astimezone()),
        "currency": "DKK",
        "expenses": [entry_to_dict(entry) for entry in state.all_entries()],
    }


def default_export_name(exported_at: datetime | None = None) -> str:
    return f"budgeto-export-{(exported_at or datetime.now()).strftime('%Y-%m-%d')}.json"


def export_to_json(state: AppState, json_path: str, exported_at: datetime | None = None) -> str:
    """Write a one-way JSON dump of every entry. Not meant to be imported back."""
    target = Path(json_path)
    if target.parent:
        target.parent.mkdir(parents=True, exist_ok=True)
    payload = build_export_payload(state, exported_at)
    with open(target, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    print(f"[backup] Entries exported to JSON: {target}")
    return str(target)
