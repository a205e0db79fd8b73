from dataclasses import dataclass, field

from config import CURRENT_VERSION, DEFAULT_CURRENCY

from .categories import Category
from .entries import Entry, FixedEntry, VariableEntry
from .money import normalize_currency


@dataclass
class AppState:
    """The single persisted document.

    Instances handed out by the store are private copies; changes only take
    effect when routed back through the store's save path.
    """

    version: int = CURRENT_VERSION
    fixed_entries: list[FixedEntry] = field(default_factory=list)
    variable_entries: list[VariableEntry] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    last_reset_timestamp: str | None = None
    default_currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        self.default_currency = normalize_currency(self.default_currency)

    def all_entries(self) -> list[Entry]:
        return [*self.fixed_entries, *self.variable_entries]

    def find_entry(self, entry_id: str) -> Entry | None:
        for entry in self.all_entries():
            if entry.id == entry_id:
                return entry
        return None

    def replace_entry(self, updated: Entry) -> bool:
        entries: list = (
            self.fixed_entries if isinstance(updated, FixedEntry) else self.variable_entries
        )
        for index, entry in enumerate(entries):
            if entry.id == updated.id:
                entries[index] = updated
                return True
        return False

    def remove_entry(self, entry_id: str, kind: str) -> bool:
        entries: list = self.fixed_entries if kind == "fixed" else self.variable_entries
        for index, entry in enumerate(entries):
            if entry.id == entry_id:
                del entries[index]
                return True
        return False
