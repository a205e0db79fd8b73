"""Mapping between the typed app state and its JSON document form.

``state_from_dict`` expects a document that has already been migrated to the
current version. Entries stored with only ``legacyAmountMinor`` are upgraded
on read; any other malformed item raises ``CorruptStateError``.
"""

import logging

from config import DEFAULT_CURRENCY
from domain.categories import Category, Subcategory
from domain.entries import Entry, FixedEntry, GeoPoint, VariableEntry
from domain.errors import CorruptStateError, DomainError
from domain.migrations import migrate_entry_v1
from domain.money import Money
from domain.state import AppState

logger = logging.getLogger(__name__)


def money_to_dict(money: Money) -> dict:
    return {"amount": int(money.amount), "currency": money.currency}


def money_from_dict(item: dict) -> Money:
    return Money(int(item["amount"]), str(item.get("currency") or DEFAULT_CURRENCY))


def entry_to_dict(entry: Entry) -> dict:
    payload: dict = {
        "id": entry.id,
        "type": entry.type,
        "categoryId": entry.category_id,
        "legacyAmountMinor": entry.legacy_amount_minor,
        "money": money_to_dict(entry.money),
    }
    if entry.subcategory_id:
        payload["subcategoryId"] = entry.subcategory_id
    if entry.note:
        payload["note"] = entry.note
    if isinstance(entry, VariableEntry):
        payload["timestamp"] = entry.timestamp
        payload["geo"] = (
            {"lat": entry.geo.lat, "lng": entry.geo.lng} if entry.geo is not None else None
        )
    return payload


def _entry_common(item: dict) -> dict:
    if not isinstance(item.get("money"), dict):
        legacy = item.get("legacyAmountMinor")
        if isinstance(legacy, bool) or not isinstance(legacy, int):
            raise ValueError("entry has neither money nor an integer legacyAmountMinor")
        # Lazy upgrade for entries written without a money object.
        logger.warning("Entry %s has no money field, using legacyAmountMinor", item.get("id"))
        item = migrate_entry_v1(item)
    money_item = item["money"]
    return {
        "id": str(item.get("id") or ""),
        "type": str(item.get("type") or ""),
        "category_id": str(item.get("categoryId") or ""),
        "subcategory_id": item.get("subcategoryId") or None,
        "money": money_from_dict(money_item),
        "note": item.get("note"),
    }


def fixed_entry_from_dict(item: dict) -> FixedEntry:
    return FixedEntry(**_entry_common(item))


def variable_entry_from_dict(item: dict) -> VariableEntry:
    geo_item = item.get("geo")
    geo = None
    if isinstance(geo_item, dict):
        geo = GeoPoint(lat=geo_item.get("lat"), lng=geo_item.get("lng"))
    return VariableEntry(
        **_entry_common(item),
        timestamp=item.get("timestamp", 0),
        geo=geo,
    )


def subcategory_to_dict(sub: Subcategory) -> dict:
    payload: dict = {"id": sub.id}
    if sub.display_name_key:
        payload["displayNameKey"] = sub.display_name_key
    if sub.legacy_display_name:
        payload["legacyDisplayName"] = sub.legacy_display_name
    if sub.icon:
        payload["icon"] = sub.icon
    return payload


def category_to_dict(category: Category) -> dict:
    payload: dict = {"id": category.id, "icon": category.icon}
    if category.display_name_key:
        payload["displayNameKey"] = category.display_name_key
    if category.legacy_display_name:
        payload["legacyDisplayName"] = category.legacy_display_name
    if category.color:
        payload["color"] = category.color
    if category.subcategories:
        payload["subcategories"] = [subcategory_to_dict(sub) for sub in category.subcategories]
    return payload


def category_from_dict(item: dict) -> Category:
    subcategories = [
        Subcategory(
            id=str(sub.get("id") or ""),
            display_name_key=sub.get("displayNameKey"),
            legacy_display_name=sub.get("legacyDisplayName"),
            icon=sub.get("icon"),
        )
        for sub in item.get("subcategories") or []
        if isinstance(sub, dict)
    ]
    return Category(
        id=str(item.get("id") or ""),
        icon=str(item.get("icon") or ""),
        display_name_key=item.get("displayNameKey"),
        legacy_display_name=item.get("legacyDisplayName"),
        color=item.get("color"),
        subcategories=tuple(subcategories),
    )


def _parse_list(items: object, parser, label: str) -> list:
    parsed = []
    if not isinstance(items, list):
        return parsed
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise CorruptStateError(f"Stored {label} at index {index} is not an object")
        try:
            parsed.append(parser(item))
        except (DomainError, KeyError, TypeError, ValueError) as exc:
            raise CorruptStateError(f"Stored {label} at index {index} is invalid: {exc}") from exc
    return parsed


def state_to_dict(state: AppState) -> dict:
    return {
        "version": state.version,
        "fixedEntries": [entry_to_dict(entry) for entry in state.fixed_entries],
        "variableEntries": [entry_to_dict(entry) for entry in state.variable_entries],
        "categories": [category_to_dict(category) for category in state.categories],
        "lastResetTimestamp": state.last_reset_timestamp,
        "defaultCurrency": state.default_currency,
    }


def state_from_dict(data: dict) -> AppState:
    return AppState(
        version=int(data.get("version", 1)),
        fixed_entries=_parse_list(data.get("fixedEntries"), fixed_entry_from_dict, "fixed entry"),
        variable_entries=_parse_list(
            data.get("variableEntries"), variable_entry_from_dict, "variable entry"
        ),
        categories=_parse_list(data.get("categories"), category_from_dict, "category"),
        last_reset_timestamp=data.get("lastResetTimestamp") or None,
        default_currency=str(data.get("defaultCurrency") or DEFAULT_CURRENCY),
    )
