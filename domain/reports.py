from collections.abc import Iterable
from datetime import datetime

from prettytable import PrettyTable

from .currency import CurrencyService
from .dates import REFERENCE_TZ, format_date_dk, month_bounds
from .entries import Entry, VariableEntry
from .formatting import format_money
from .money import Money, normalize_currency
from .state import AppState


class MonthlyReport:
    """Income/expense summary of one month, expressed in a single currency.

    Fixed entries count in every month; variable entries only in the month
    their timestamp falls in.
    """

    def __init__(
        self,
        state: AppState,
        currency: str | None = None,
        currency_service: CurrencyService | None = None,
        month: tuple[int, int] | None = None,
    ):
        self._currency_service = currency_service or CurrencyService()
        self._currency = normalize_currency(currency or state.default_currency)
        self._month = month
        self._fixed = list(state.fixed_entries)
        self._variable = [entry for entry in state.variable_entries if self._in_month(entry)]

    @property
    def currency(self) -> str:
        return self._currency

    def _in_month(self, entry: VariableEntry) -> bool:
        if self._month is None:
            return True
        year, month = self._month
        start, end = month_bounds(datetime(year, month, 1, tzinfo=REFERENCE_TZ))
        return start <= entry.timestamp <= end

    def entries(self) -> list[Entry]:
        return [*self._fixed, *self._variable]

    def _convert(self, entry: Entry) -> Money:
        return self._currency_service.convert(entry.money, self._currency)

    def _sum(self, entries: Iterable[Entry]) -> Money:
        total = Money.zero(self._currency)
        for entry in entries:
            total = total + Money(abs(self._convert(entry).amount), self._currency)
        return total

    def total_income(self) -> Money:
        return self._sum(e for e in self.entries() if e.is_income)

    def total_expense(self) -> Money:
        return self._sum(e for e in self.entries() if not e.is_income)

    def fixed_expense(self) -> Money:
        return self._sum(e for e in self._fixed if not e.is_income)

    def variable_expense(self) -> Money:
        return self._sum(e for e in self._variable if not e.is_income)

    def balance(self) -> Money:
        return self.total_income() - self.total_expense()

    def expenses_by_category(self) -> dict[str, Money]:
        totals: dict[str, Money] = {}
        for entry in self.entries():
            if entry.is_income:
                continue
            amount = Money(abs(self._convert(entry).amount), self._currency)
            current = totals.get(entry.category_id, Money.zero(self._currency))
            totals[entry.category_id] = current + amount
        return dict(sorted(totals.items(), key=lambda item: item[1].amount, reverse=True))

    def as_table(self, locale: str = "da") -> str:
        table = PrettyTable()
        amount_column = f"Amount ({self._currency})"
        table.field_names = ["Date", "Kind", "Type", "Category", "Note", amount_column]
        table.align[amount_column] = "r"

        for entry in self._fixed:
            table.add_row(
                ["", "Fixed", entry.type, entry.category_id, entry.note or "", self._display(entry, locale)]
            )
        for entry in sorted(self._variable, key=lambda e: e.timestamp, reverse=True):
            table.add_row(
                [
                    format_date_dk(entry.timestamp),
                    "Variable",
                    entry.type,
                    entry.category_id,
                    entry.note or "",
                    self._display(entry, locale),
                ]
            )

        table.add_row(["", "", "", "", "INCOME", format_money(self.total_income(), True, locale)])
        table.add_row(["", "", "", "", "EXPENSE", format_money(self.total_expense(), True, locale)])
        table.add_row(["", "", "", "", "BALANCE", format_money(self.balance(), True, locale)])
        return str(table)

    def category_table(self, locale: str = "da") -> str:
        table = PrettyTable()
        table.field_names = ["Category", f"Expense ({self._currency})"]
        for category_id, amount in self.expenses_by_category().items():
            table.add_row([category_id, format_money(amount, True, locale)])
        return str(table)

    def signed_amount(self, entry: Entry) -> Money:
        """Entry amount in the report currency, negative for expenses."""
        converted = self._convert(entry)
        if entry.is_income:
            return Money(abs(converted.amount), converted.currency)
        return Money(-abs(converted.amount), converted.currency)

    def _display(self, entry: Entry, locale: str) -> str:
        return format_money(self.signed_amount(entry), True, locale)
