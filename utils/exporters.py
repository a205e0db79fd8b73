import logging
import os

from domain.reports import MonthlyReport
from domain.state import AppState

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "xlsx", "pdf")


def export_state(
    state: AppState,
    filepath: str,
    fmt: str,
    report: MonthlyReport | None = None,
    locale: str = "da",
) -> str:
    fmt = (fmt or "json").lower()
    os.makedirs(os.path.dirname(filepath), exist_ok=True) if os.path.dirname(
        filepath
    ) else None
    try:
        if fmt == "json":
            from backup import export_to_json

            export_to_json(state, filepath)
        elif fmt in ("xlsx", "xls"):
            from utils.excel_utils import entries_to_xlsx

            entries_to_xlsx(state, filepath, report)
        elif fmt == "pdf":
            from utils.pdf_utils import report_to_pdf

            report_to_pdf(report or MonthlyReport(state), filepath, locale)
        else:
            raise ValueError(f"Unsupported export format: {fmt}")
    except Exception:
        logger.exception("Failed to export entries to %s (%s)", filepath, fmt)
        raise
    return filepath
