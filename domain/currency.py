from .errors import UnknownCurrency
from .money import SUPPORTED_CURRENCIES, Money, normalize_currency, round_half_away

# Units of each currency per 1 DKK. Fixed until a live rate source exists.
FIXED_EXCHANGE_RATES: dict[str, float] = {
    "DKK": 1.0,
    "EUR": 0.134,
    "USD": 0.145,
    "GBP": 0.115,
    "SEK": 1.52,
    "NOK": 1.55,
}


class CurrencyService:
    def __init__(self, rates: dict[str, float] | None = None, base: str = "DKK"):
        self._rates = dict(FIXED_EXCHANGE_RATES if rates is None else rates)
        self._base = normalize_currency(base)

    @property
    def base_currency(self) -> str:
        return self._base

    @property
    def supported_currencies(self) -> tuple[str, ...]:
        return tuple(code for code in SUPPORTED_CURRENCIES if self._has_rate(code))

    def get_all_rates(self) -> dict[str, float]:
        return dict(self._rates)

    def _has_rate(self, code: str) -> bool:
        return code == self._base or code in self._rates

    def get_rate(self, currency: str) -> float:
        """Units of ``currency`` per one unit of the base currency."""
        code = normalize_currency(currency)
        if code == self._base:
            return 1.0
        try:
            return float(self._rates[code])
        except KeyError as exc:
            raise UnknownCurrency(currency) from exc

    def get_exchange_rate(self, source: str, target: str) -> float:
        source_code = normalize_currency(source)
        target_code = normalize_currency(target)
        if source_code == target_code:
            return 1.0
        return self.get_rate(target_code) / self.get_rate(source_code)

    def convert(self, money: Money, target: str) -> Money:
        """Convert money into ``target`` at the fixed rates.

        Returns ``money`` itself when no conversion is needed.
        """
        target_code = normalize_currency(target)
        if money.currency == target_code:
            return money
        amount_in_base = money.amount / self.get_rate(money.currency)
        return Money(round_half_away(amount_in_base * self.get_rate(target_code)), target_code)


_DEFAULT_SERVICE = CurrencyService()


def get_exchange_rate(source: str, target: str) -> float:
    return _DEFAULT_SERVICE.get_exchange_rate(source, target)


def convert_currency(money: Money, target: str) -> Money:
    return _DEFAULT_SERVICE.convert(money, target)
