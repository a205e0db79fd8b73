import logging
import os

from openpyxl import Workbook

from domain.dates import format_datetime_dk
from domain.entries import Entry, VariableEntry
from domain.money import to_major_units
from domain.reports import MonthlyReport
from domain.state import AppState

logger = logging.getLogger(__name__)

ENTRY_HEADERS = [
    "id",
    "type",
    "category",
    "subcategory",
    "amount",
    "currency",
    "note",
]


def _safe_str(value):
    return "" if value is None else str(value)


def _entry_row(entry: Entry) -> list:
    return [
        entry.id,
        entry.type,
        entry.category_id,
        _safe_str(entry.subcategory_id),
        to_major_units(entry.money.amount, entry.money.currency),
        entry.money.currency,
        _safe_str(entry.note),
    ]


def entries_to_xlsx(
    state: AppState, filepath: str, report: MonthlyReport | None = None
) -> None:
    """Export fixed and variable entries to XLSX. Read-only format."""
    wb = Workbook()
    fixed_ws = wb.active
    if fixed_ws is not None:
        fixed_ws.title = "Fixed"
        fixed_ws.append(ENTRY_HEADERS)
        for entry in state.fixed_entries:
            fixed_ws.append(_entry_row(entry))

    variable_ws = wb.create_sheet("Variable")
    variable_ws.append([*ENTRY_HEADERS, "time", "lat", "lng"])
    for entry in state.variable_entries:
        geo = entry.geo if isinstance(entry, VariableEntry) else None
        variable_ws.append(
            [
                *_entry_row(entry),
                format_datetime_dk(entry.timestamp),
                geo.lat if geo else None,
                geo.lng if geo else None,
            ]
        )

    if report is not None:
        summary_ws = wb.create_sheet("Summary")
        code = report.currency
        summary_ws.append(["Metric", f"Amount ({code})"])
        summary_ws.append(["Income", to_major_units(report.total_income().amount, code)])
        summary_ws.append(["Expense", to_major_units(report.total_expense().amount, code)])
        summary_ws.append(["Balance", to_major_units(report.balance().amount, code)])
        summary_ws.append([])
        summary_ws.append(["Category", f"Expense ({code})"])
        for category_id, amount in report.expenses_by_category().items():
            summary_ws.append([category_id, to_major_units(amount.amount, code)])

    os.makedirs(os.path.dirname(filepath), exist_ok=True) if os.path.dirname(
        filepath
    ) else None
    wb.save(filepath)
    wb.close()
    logger.info("Exported %s entries to %s", len(state.all_entries()), filepath)
