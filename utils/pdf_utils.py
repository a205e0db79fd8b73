import logging
import os

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from domain.dates import format_date_dk
from domain.entries import VariableEntry
from domain.formatting import format_money
from domain.reports import MonthlyReport

logger = logging.getLogger(__name__)

FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/Library/Fonts/Arial Unicode.ttf",
    "DejaVuSans.ttf",
]


def _safe_str(value):
    return "" if value is None else str(value)


def _register_unicode_font() -> str:
    """Register a TTF font with wide glyph coverage and return its name.

    Falls back to built-in Helvetica, which still covers Danish letters and
    the euro and pound signs.
    """
    windir = os.environ.get("WINDIR") or os.environ.get("SystemRoot")
    candidates = list(FONT_CANDIDATES)
    if windir:
        candidates.insert(0, os.path.join(windir, "Fonts", "arial.ttf"))
    for path in candidates:
        if not os.path.exists(path):
            continue
        name = os.path.splitext(os.path.basename(path))[0].replace(" ", "")
        try:
            pdfmetrics.registerFont(TTFont(name, path))
        except Exception:
            logger.debug("Failed to register font %s at %s", name, path, exc_info=True)
            continue
        logger.debug("Registered font %s from %s", name, path)
        return name
    return "Helvetica"


def report_to_pdf(
    report: MonthlyReport, filepath: str, locale: str = "da", title: str = ""
) -> None:
    """Export a monthly report as a PDF statement."""
    data = [["Date", "Type", "Category", "Note", f"Amount ({report.currency})"]]
    for entry in report.entries():
        data.append(
            [
                format_date_dk(entry.timestamp) if isinstance(entry, VariableEntry) else "Fixed",
                entry.type,
                entry.category_id,
                _safe_str(entry.note),
                format_money(report.signed_amount(entry), True, locale),
            ]
        )
    data.append(["INCOME", "", "", "", format_money(report.total_income(), True, locale)])
    data.append(["EXPENSE", "", "", "", format_money(report.total_expense(), True, locale)])
    data.append(["BALANCE", "", "", "", format_money(report.balance(), True, locale)])

    os.makedirs(os.path.dirname(filepath), exist_ok=True) if os.path.dirname(
        filepath
    ) else None

    doc = SimpleDocTemplate(
        filepath,
        pagesize=A4,
        leftMargin=30,
        rightMargin=30,
        topMargin=30,
        bottomMargin=30,
    )
    available_width = A4[0] - 60
    col_widths = [
        available_width * 0.15,
        available_width * 0.12,
        available_width * 0.18,
        available_width * 0.33,
        available_width * 0.22,
    ]

    font_name = _register_unicode_font()
    table = Table(data, colWidths=col_widths, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("FONT", (0, 0), (-1, -1), font_name),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("ALIGN", (4, 0), (4, -1), "RIGHT"),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ]
        )
    )

    styles = getSampleStyleSheet()
    heading = styles["Heading2"]
    heading.fontName = font_name
    elems = [Paragraph(title or "Budgeto monthly statement", heading), Spacer(1, 12), table]
    doc.build(elems)
    logger.info("Exported monthly report to %s", filepath)

