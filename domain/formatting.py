"""Locale-aware display and parsing of monetary strings.

Digit grouping follows the display locale, symbol placement follows the
currency. Parsing does not depend on the locale: the last ``,`` or ``.`` in
the input is taken as the decimal separator.
"""

import re
from typing import Literal

from .money import Money, get_currency_info

Locale = Literal["da", "en"]

# (thousand separator, decimal separator)
LOCALE_SEPARATORS: dict[str, tuple[str, str]] = {
    "da": (".", ","),
    "en": (",", "."),
}

_DIGITS = re.compile(r"[0-9]*")


def _group_thousands(digits: str, separator: str) -> str:
    groups = []
    while len(digits) > 3:
        groups.append(digits[-3:])
        digits = digits[:-3]
    groups.append(digits)
    return separator.join(reversed(groups))


def format_number(amount: int, minor_unit_digits: int, locale: str = "da") -> str:
    try:
        thousand_sep, decimal_sep = LOCALE_SEPARATORS[locale]
    except KeyError as exc:
        raise ValueError(f"Unsupported locale: {locale}") from exc
    whole, fraction = divmod(abs(amount), 10**minor_unit_digits)
    text = _group_thousands(str(whole), thousand_sep)
    if minor_unit_digits:
        text = f"{text}{decimal_sep}{fraction:0{minor_unit_digits}d}"
    return text


def format_money(money: Money, include_currency_symbol: bool = True, locale: str = "da") -> str:
    info = get_currency_info(money.currency)
    number = format_number(money.amount, info.minor_unit_digits, locale)
    sign = "-" if money.amount < 0 else ""
    if not include_currency_symbol:
        return f"{sign}{number}"
    if info.symbol_position == "before":
        return f"{sign}{info.symbol}{number}"
    return f"{sign}{number} {info.symbol}"


def parse_money(text: str | None, currency: str) -> Money | None:
    """Parse user input such as ``"1.234,56 kr"`` or ``"$1,234.56"``.

    Returns None for empty or non-numeric input. Fraction digits beyond the
    currency's minor units are truncated, so ``"1.234"`` reads as 1.23.
    """
    info = get_currency_info(currency)
    if not text or not text.strip():
        return None

    cleaned = re.sub(re.escape(info.symbol), "", text, flags=re.IGNORECASE)
    cleaned = re.sub(r"\s+", "", cleaned)

    negative = cleaned.startswith("-")
    if negative:
        cleaned = cleaned[1:]

    separator_at = max(cleaned.rfind(","), cleaned.rfind("."))
    if separator_at == -1:
        integer_part, fraction_part = cleaned, ""
    else:
        integer_part = re.sub(r"[.,]", "", cleaned[:separator_at])
        fraction_part = cleaned[separator_at + 1 :]

    if not (_DIGITS.fullmatch(integer_part) and _DIGITS.fullmatch(fraction_part)):
        return None
    if not integer_part and not fraction_part:
        return None

    digits = info.minor_unit_digits
    fraction_part = fraction_part[:digits].ljust(digits, "0")
    amount = int((integer_part or "0") + fraction_part)
    return Money(-amount if negative else amount, info.code)


def format_dkk(ore: int, include_currency_symbol: bool = True, locale: str = "da") -> str:
    """Backward-compatible alias."""
    return format_money(Money(ore, "DKK"), include_currency_symbol, locale)


def parse_dkk(text: str | None) -> int | None:
    """Backward-compatible alias."""
    money = parse_money(text, "DKK")
    return money.amount if money is not None else None
