"""Money value type and per-currency metadata.

All amounts are held as integers in minor units (øre, cents). Conversion
between major and minor units goes through ``Decimal`` so binary float drift
(``0.1 + 0.2``) never leaks into stored amounts.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from .errors import UnknownCurrency

CurrencyCode = Literal["DKK", "EUR", "USD", "GBP", "SEK", "NOK"]
SymbolPosition = Literal["before", "after"]


@dataclass(frozen=True)
class CurrencyInfo:
    code: str
    symbol: str
    display_name: str
    minor_unit_digits: int
    symbol_position: SymbolPosition
    decimal_separator: str
    thousand_separator: str


CURRENCY_INFO: dict[str, CurrencyInfo] = {
    "DKK": CurrencyInfo("DKK", "kr", "Danish krone", 2, "after", ",", "."),
    "EUR": CurrencyInfo("EUR", "€", "Euro", 2, "before", ",", "."),
    "USD": CurrencyInfo("USD", "$", "US dollar", 2, "before", ".", ","),
    "GBP": CurrencyInfo("GBP", "£", "British pound", 2, "before", ".", ","),
    "SEK": CurrencyInfo("SEK", "kr", "Swedish krona", 2, "after", ",", " "),
    "NOK": CurrencyInfo("NOK", "kr", "Norwegian krone", 2, "after", ",", " "),
}

SUPPORTED_CURRENCIES: tuple[str, ...] = tuple(CURRENCY_INFO)


def normalize_currency(code: object) -> str:
    """Return the canonical upper-case code or raise ``UnknownCurrency``."""
    if not isinstance(code, str):
        raise UnknownCurrency(code)
    normalized = code.strip().upper()
    if normalized not in CURRENCY_INFO:
        raise UnknownCurrency(code)
    return normalized


def get_currency_info(code: str) -> CurrencyInfo:
    return CURRENCY_INFO[normalize_currency(code)]


@dataclass(frozen=True)
class Money:
    amount: int
    currency: str = "DKK"

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            if isinstance(self.amount, float) and self.amount.is_integer():
                object.__setattr__(self, "amount", int(self.amount))
            else:
                raise ValueError(f"Money amount must be an integer, got {self.amount!r}")
        object.__setattr__(self, "currency", normalize_currency(self.currency))

    def _require_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot combine {self.currency} with {other.currency} without conversion"
            )

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> "Money":
        return Money(-self.amount, self.currency)

    def is_zero(self) -> bool:
        return self.amount == 0

    @classmethod
    def zero(cls, currency: str = "DKK") -> "Money":
        return cls(0, currency)


def _as_decimal(value: float | int | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # repr() gives the shortest decimal string that round-trips the float.
    return Decimal(repr(value))


def round_half_away(value: float | int | Decimal) -> int:
    return int(_as_decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_minor_units(amount: float | int | Decimal, currency: str) -> int:
    info = get_currency_info(currency)
    return round_half_away(_as_decimal(amount).scaleb(info.minor_unit_digits))


def to_major_units(amount: int, currency: str) -> float:
    info = get_currency_info(currency)
    return amount / 10**info.minor_unit_digits


def kroner_to_ore(kroner: float) -> int:
    """Backward-compatible alias."""
    return to_minor_units(kroner, "DKK")


def ore_to_kroner(ore: int) -> float:
    """Backward-compatible alias."""
    return to_major_units(ore, "DKK")


def dkk_ore_to_money(ore: int) -> Money:
    return Money(int(ore), "DKK")


def money_to_dkk_ore(money: Money) -> int:
    if money.currency != "DKK":
        raise ValueError("Only DKK money can be expressed as øre")
    return money.amount
