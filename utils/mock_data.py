import calendar
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime

from domain.dates import now_local, to_epoch_ms, to_local
from domain.entries import FixedEntry, VariableEntry
from domain.money import Money

logger = logging.getLogger(__name__)

MIN_VARIABLE_ENTRIES = 35
MAX_VARIABLE_ENTRIES = 45


@dataclass(frozen=True)
class VariableTemplate:
    category_id: str
    subcategory_id: str | None
    min_amount: int
    max_amount: int
    currency: str = "DKK"
    notes: tuple[str, ...] = ()
    type: str = "expense"


@dataclass
class MockData:
    fixed_entries: list[FixedEntry] = field(default_factory=list)
    variable_entries: list[VariableEntry] = field(default_factory=list)


TEMPLATES: tuple[VariableTemplate, ...] = (
    VariableTemplate("mad", "dagligvarer", 15000, 45000, notes=("Netto", "Rema 1000", "Føtex", "Lidl")),
    VariableTemplate("mad", "restaurant", 20000, 85000, notes=("Sushi", "Pizza", "Thai takeaway")),
    VariableTemplate("mad", "cafe", 3500, 7500, notes=("Kaffe", "Latte", "Morgenmad")),
    VariableTemplate("transport", "benzin", 40000, 65000, notes=("Shell", "Q8", "Circle K")),
    VariableTemplate("transport", "kollektiv", 2400, 4800, notes=("Rejsekort", "Bus", "Metro")),
    VariableTemplate("transport", "parkering", 2000, 8000, notes=("P-billet", "Parkeringshus")),
    VariableTemplate("shopping", "toj", 15000, 75000, notes=("H&M", "Zara", "Uniqlo")),
    VariableTemplate("shopping", "elektronik", 30000, 400000, notes=("Elgiganten", "Power")),
    VariableTemplate("shopping", "diverse", 5000, 25000),
    VariableTemplate("fritid", "hobby", 10000, 50000, notes=("Materialekøb", "Bog", "Spil")),
    VariableTemplate("sundhed", "apotek", 5000, 25000, notes=("Apoteket", "Matas")),
    VariableTemplate("mad", "restaurant", 2500, 8000, "EUR", ("Paris restaurant", "Berlin cafe")),
    VariableTemplate("shopping", "elektronik", 5000, 50000, "USD", ("Amazon.com", "eBay")),
)


def mock_fixed_entries() -> list[FixedEntry]:
    def fixed(entry_id, entry_type, category, amount, subcategory=None, note=None):
        return FixedEntry(
            id=entry_id,
            type=entry_type,
            category_id=category,
            subcategory_id=subcategory,
            money=Money(amount, "DKK"),
            note=note,
        )

    return [
        fixed("mock-lon", "income", "lon", 3500000, note="Månedsløn"),
        fixed("mock-husleje", "expense", "bolig", 850000, "husleje", "Husleje inkl. aconto"),
        fixed("mock-el", "expense", "bolig", 45000, "el"),
        fixed("mock-internet", "expense", "bolig", 29900, "internet", "Fibernet 1000/1000"),
        fixed("mock-streaming-netflix", "expense", "fritid", 11900, "streaming", "Netflix Premium"),
        fixed("mock-streaming-spotify", "expense", "fritid", 9900, "streaming", "Spotify Family"),
        fixed("mock-sport-fitness", "expense", "fritid", 39900, "sport", "Fitness World"),
    ]


def generate_mock_data(now: datetime | None = None, rng: random.Random | None = None) -> MockData:
    """Plausible fixed and variable entries for the current month.

    Variable entries fall on days of the month that have already started and
    are returned newest first.
    """
    rng = rng or random.Random()
    current = to_local(now) if now is not None else now_local()
    days_in_month = calendar.monthrange(current.year, current.month)[1]
    last_day = min(current.day, days_in_month)

    variable: list[VariableEntry] = []
    count = rng.randint(MIN_VARIABLE_ENTRIES, MAX_VARIABLE_ENTRIES)
    for index in range(count):
        template = rng.choice(TEMPLATES)
        moment = current.replace(
            day=rng.randint(1, last_day),
            hour=rng.randint(8, 21),
            minute=rng.randint(0, 59),
            second=0,
            microsecond=0,
        )
        moment = min(moment, current)
        note = rng.choice(template.notes) if template.notes and rng.random() > 0.5 else None
        variable.append(
            VariableEntry(
                id=f"mock-var-{index}-{to_epoch_ms(current)}",
                type=template.type,
                category_id=template.category_id,
                subcategory_id=template.subcategory_id,
                money=Money(rng.randint(template.min_amount, template.max_amount), template.currency),
                note=note,
                timestamp=to_epoch_ms(moment),
            )
        )

    variable.sort(key=lambda entry: entry.timestamp, reverse=True)
    logger.debug("Generated %s mock variable entries", len(variable))
    return MockData(fixed_entries=mock_fixed_entries(), variable_entries=variable)
