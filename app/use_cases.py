import logging
from dataclasses import replace

from domain.categories import Category, Subcategory, find_category, name_key_for
from domain.currency import CurrencyService
from domain.entries import Entry, FixedEntry, GeoPoint, VariableEntry
from domain.formatting import parse_money
from domain.money import Money, normalize_currency
from domain.reports import MonthlyReport
from domain.state import AppState
from infrastructure.state_store import AppStateStore

logger = logging.getLogger(__name__)


def _resolve_money(state: AppState, amount: Money | str, currency: str | None) -> Money:
    if isinstance(amount, Money):
        return amount
    code = normalize_currency(currency or state.default_currency)
    money = parse_money(amount, code)
    if money is None:
        raise ValueError(f"Invalid amount: {amount!r}")
    return money


def _require_category(state: AppState, category_id: str, subcategory_id: str | None) -> None:
    category = find_category(state.categories, category_id)
    if category is None:
        raise ValueError(f"Unknown category: {category_id}")
    if subcategory_id and category.subcategory(subcategory_id) is None:
        raise ValueError(f"Unknown subcategory {subcategory_id} in category {category_id}")


class CreateFixedEntry:
    def __init__(self, store: AppStateStore):
        self._store = store

    def execute(
        self,
        *,
        type: str,
        category_id: str,
        amount: Money | str,
        currency: str | None = None,
        subcategory_id: str | None = None,
        note: str | None = None,
    ) -> FixedEntry:
        """Create and persist a recurring entry."""

        def mutate(state: AppState) -> FixedEntry:
            _require_category(state, category_id, subcategory_id)
            entry = FixedEntry(
                type=type,
                category_id=category_id,
                subcategory_id=subcategory_id,
                money=_resolve_money(state, amount, currency),
                note=note,
            )
            state.fixed_entries.append(entry)
            return entry

        entry = self._store.with_lock(mutate)
        logger.info(
            "Fixed entry created id=%s type=%s category=%s amount=%s %s",
            entry.id,
            entry.type,
            entry.category_id,
            entry.money.amount,
            entry.money.currency,
        )
        return entry


class CreateVariableEntry:
    def __init__(self, store: AppStateStore):
        self._store = store

    def execute(
        self,
        *,
        type: str,
        category_id: str,
        amount: Money | str,
        currency: str | None = None,
        subcategory_id: str | None = None,
        note: str | None = None,
        timestamp: int | None = None,
        geo: tuple[float, float] | None = None,
    ) -> VariableEntry:
        """Create and persist a one-off entry; it is cleared at the next month."""

        def mutate(state: AppState) -> VariableEntry:
            _require_category(state, category_id, subcategory_id)
            fields = dict(
                type=type,
                category_id=category_id,
                subcategory_id=subcategory_id,
                money=_resolve_money(state, amount, currency),
                note=note,
                geo=GeoPoint(*geo) if geo is not None else None,
            )
            if timestamp is not None:
                fields["timestamp"] = timestamp
            entry = VariableEntry(**fields)
            state.variable_entries.append(entry)
            state.variable_entries.sort(key=lambda e: e.timestamp, reverse=True)
            return entry

        entry = self._store.with_lock(mutate)
        logger.info(
            "Variable entry created id=%s type=%s category=%s amount=%s %s",
            entry.id,
            entry.type,
            entry.category_id,
            entry.money.amount,
            entry.money.currency,
        )
        return entry


class UpdateEntryNote:
    def __init__(self, store: AppStateStore):
        self._store = store

    def execute(self, *, entry_id: str, note: str | None) -> bool:
        def mutate(state: AppState) -> bool:
            entry = state.find_entry(entry_id)
            if entry is None:
                return False
            return state.replace_entry(entry.with_note(note))

        return self._store.with_lock(mutate)


class _DeleteEntry:
    kind = ""

    def __init__(self, store: AppStateStore):
        self._store = store

    def execute(self, entry_id: str) -> bool:
        """Delete entry by id. Returns True if deleted."""
        deleted = self._store.with_lock(lambda state: state.remove_entry(entry_id, self.kind))
        if deleted:
            logger.info("Deleted %s entry id=%s", self.kind, entry_id)
        return deleted


class DeleteFixedEntry(_DeleteEntry):
    kind = "fixed"


class DeleteVariableEntry(_DeleteEntry):
    kind = "variable"


class ListEntries:
    def __init__(self, store: AppStateStore):
        self._store = store

    def execute(self, kind: str | None = None) -> list[Entry]:
        state = self._store.load_initialized()
        if kind == "fixed":
            return list(state.fixed_entries)
        if kind == "variable":
            return list(state.variable_entries)
        return state.all_entries()


class AddCategory:
    def __init__(self, store: AppStateStore):
        self._store = store

    def execute(
        self,
        *,
        category_id: str,
        icon: str,
        name: str | None = None,
        color: str | None = None,
        subcategory_ids: list[str] | None = None,
    ) -> Category:
        """Add a user-defined category; ``name`` is kept as its untranslated label."""
        category = Category(
            id=category_id,
            icon=icon,
            display_name_key=name_key_for(category_id),
            legacy_display_name=name,
            color=color,
            subcategories=tuple(
                Subcategory(id=sub_id, display_name_key=name_key_for(sub_id))
                for sub_id in subcategory_ids or []
            ),
        )

        def mutate(state: AppState) -> Category:
            if find_category(state.categories, category.id) is not None:
                raise ValueError(f"Category already exists: {category.id}")
            state.categories.append(category)
            return category

        self._store.with_lock(mutate)
        logger.info("Category added id=%s", category.id)
        return category


class RemoveCategory:
    def __init__(self, store: AppStateStore):
        self._store = store

    def execute(self, category_id: str) -> bool:
        def mutate(state: AppState) -> bool:
            category = find_category(state.categories, category_id)
            if category is None:
                return False
            in_use = [e.id for e in state.all_entries() if e.category_id == category_id]
            if in_use:
                raise ValueError(
                    f"Category {category_id} is used by {len(in_use)} entries and cannot be removed"
                )
            state.categories.remove(category)
            return True

        removed = self._store.with_lock(mutate)
        if removed:
            logger.info("Category removed id=%s", category_id)
        return removed


class ChangeDefaultCurrency:
    def __init__(self, store: AppStateStore, currency: CurrencyService | None = None):
        self._store = store
        self._currency = currency or CurrencyService()

    def execute(self, currency: str) -> bool:
        """Switch the default currency, converting every stored amount.

        Returns False when the currency was already the default.
        """
        target = normalize_currency(currency)

        def mutate(state: AppState) -> tuple[bool, str]:
            previous = state.default_currency
            if previous == target:
                return False, previous
            state.fixed_entries = [
                replace(entry, money=self._currency.convert(entry.money, target))
                for entry in state.fixed_entries
            ]
            state.variable_entries = [
                replace(entry, money=self._currency.convert(entry.money, target))
                for entry in state.variable_entries
            ]
            state.default_currency = target
            return True, previous

        changed, previous = self._store.with_lock(mutate)
        if changed:
            logger.info("Default currency changed from %s to %s, amounts converted", previous, target)
        return changed


class ResetAllData:
    def __init__(self, store: AppStateStore):
        self._store = store

    def execute(self) -> None:
        self._store.reset_all_data()


class GenerateMonthlyReport:
    def __init__(self, store: AppStateStore, currency: CurrencyService | None = None):
        self._store = store
        self._currency = currency or CurrencyService()

    def execute(
        self, *, currency: str | None = None, month: tuple[int, int] | None = None
    ) -> MonthlyReport:
        state = self._store.load_initialized()
        return MonthlyReport(state, currency=currency, currency_service=self._currency, month=month)
