"""Forward-only migrations of the raw state document.

Every function here is pure: it takes the decoded JSON document and returns a
new one, never touching its input. Each step detects whether it already ran
(via ``version`` or field presence) so re-running is a no-op.
"""

import copy
import logging
from collections.abc import Callable

from config import CURRENT_VERSION, DEFAULT_CURRENCY

from .categories import name_key_for

logger = logging.getLogger(__name__)

LEGACY_VERSION = 1
ENTRY_LISTS = ("fixedEntries", "variableEntries")


def document_version(data: dict) -> int:
    try:
        return int(data.get("version", LEGACY_VERSION))
    except (TypeError, ValueError):
        return LEGACY_VERSION


def migrate_entry_v1(item: dict) -> dict:
    """Give a v1 entry a ``money`` field derived from ``legacyAmountMinor``."""
    migrated = dict(item)
    if isinstance(migrated.get("money"), dict):
        return migrated
    try:
        amount = int(migrated.get("legacyAmountMinor") or 0)
    except (TypeError, ValueError):
        logger.warning("Entry %s has a non-integer legacy amount", migrated.get("id"))
        amount = 0
    migrated["legacyAmountMinor"] = amount
    migrated["money"] = {"amount": amount, "currency": "DKK"}
    return migrated


def migrate_v1_to_v2(data: dict) -> dict:
    migrated = copy.deepcopy(data)
    if not migrated.get("defaultCurrency"):
        migrated["defaultCurrency"] = DEFAULT_CURRENCY
    for key in ENTRY_LISTS:
        items = migrated.get(key)
        if not isinstance(items, list):
            migrated[key] = []
            continue
        migrated[key] = [
            migrate_entry_v1(item) if isinstance(item, dict) else item for item in items
        ]
    migrated["version"] = 2
    return migrated


MIGRATIONS: dict[int, Callable[[dict], dict]] = {
    1: migrate_v1_to_v2,
}


def migrate_document(data: dict, target_version: int = CURRENT_VERSION) -> tuple[dict, bool]:
    """Run every pending version step. Returns the document and whether it changed."""
    version = document_version(data)
    if version > target_version:
        logger.warning(
            "State document version %s is newer than supported %s; leaving as is",
            version,
            target_version,
        )
        return data, False

    changed = False
    while version < target_version:
        step = MIGRATIONS.get(version)
        if step is None:
            raise ValueError(f"No migration registered for version {version}")
        logger.info("Migrating state document: v%s -> v%s", version, version + 1)
        data = step(data)
        version = document_version(data)
        changed = True
    return data, changed


def _with_name_key(item: dict) -> tuple[dict, bool]:
    if item.get("displayNameKey") or not item.get("id"):
        return item, False
    updated = dict(item)
    updated["displayNameKey"] = name_key_for(str(item["id"]))
    return updated, True


def migrate_categories(categories: list) -> tuple[list, bool]:
    """Derive missing translation keys from category and subcategory ids."""
    changed = False
    result: list = []
    for category in categories:
        if not isinstance(category, dict):
            result.append(category)
            continue
        updated, category_changed = _with_name_key(category)
        subcategories = category.get("subcategories")
        if isinstance(subcategories, list):
            migrated_subs = []
            subs_changed = False
            for sub in subcategories:
                if isinstance(sub, dict):
                    sub, sub_changed = _with_name_key(sub)
                    subs_changed = subs_changed or sub_changed
                migrated_subs.append(sub)
            if subs_changed:
                updated = dict(updated)
                updated["subcategories"] = migrated_subs
                category_changed = True
        changed = changed or category_changed
        result.append(updated)
    return result, changed
