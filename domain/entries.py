from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Literal
from uuid import uuid4

from .dates import now_local, to_epoch_ms
from .money import Money
from .validation import ensure_coordinates, ensure_entry_type, ensure_identifier

EntryType = Literal["income", "expense"]


def new_entry_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


def _now_epoch_ms() -> int:
    return to_epoch_ms(now_local())


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def __post_init__(self) -> None:
        lat, lng = ensure_coordinates(self.lat, self.lng)
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lng", lng)


@dataclass(frozen=True)
class Entry(ABC):
    type: EntryType
    category_id: str
    money: Money
    subcategory_id: str | None = None
    note: str | None = None
    id: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", ensure_entry_type(self.type))
        object.__setattr__(self, "category_id", ensure_identifier(self.category_id, "category_id"))
        if self.subcategory_id is not None:
            subcategory = str(self.subcategory_id).strip()
            object.__setattr__(
                self,
                "subcategory_id",
                ensure_identifier(subcategory, "subcategory_id") if subcategory else None,
            )
        if not isinstance(self.money, Money):
            raise ValueError("money must be a Money value")
        note = (self.note or "").strip()
        object.__setattr__(self, "note", note or None)
        if not self.id:
            object.__setattr__(self, "id", new_entry_id(self.kind))

    @property
    def legacy_amount_minor(self) -> int:
        """Deprecated mirror of ``money.amount`` kept in the stored document."""
        return self.money.amount

    @property
    def is_income(self) -> bool:
        return self.type == "income"

    def signed_money(self) -> Money:
        if self.is_income:
            return Money(abs(self.money.amount), self.money.currency)
        return Money(-abs(self.money.amount), self.money.currency)

    def with_money(self, money: Money) -> "Entry":
        return replace(self, money=money)

    def with_note(self, note: str | None) -> "Entry":
        return replace(self, note=note)

    @property
    @abstractmethod
    def kind(self) -> str:
        raise NotImplementedError


class FixedEntry(Entry):
    """Recurring monthly obligation; survives the monthly reset."""

    @property
    def kind(self) -> str:
        return "fixed"


@dataclass(frozen=True)
class VariableEntry(Entry):
    """One-off spend; cleared by the monthly reset."""

    timestamp: int = field(default_factory=_now_epoch_ms)
    geo: GeoPoint | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        try:
            timestamp = int(self.timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("timestamp must be epoch milliseconds") from exc
        if timestamp < 0:
            raise ValueError("timestamp must not be negative")
        object.__setattr__(self, "timestamp", timestamp)

    @property
    def kind(self) -> str:
        return "variable"
