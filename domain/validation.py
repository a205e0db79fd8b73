import re

ENTRY_TYPES = ("income", "expense")
THEMES = ("light", "dark", "auto")
LOCALE_PREFERENCES = ("da", "en", "auto")

_IDENTIFIER = re.compile(r"[A-Za-z0-9_.:\-]+")


def ensure_entry_type(value: str) -> str:
    normalized = (value or "").strip().lower()
    if normalized not in ENTRY_TYPES:
        raise ValueError(f"Invalid entry type: {value}. Must be one of {list(ENTRY_TYPES)}")
    return normalized


def ensure_identifier(value: str, field_name: str = "id") -> str:
    normalized = (value or "").strip()
    if not normalized:
        raise ValueError(f"{field_name} is empty")
    if not _IDENTIFIER.fullmatch(normalized):
        raise ValueError(f"{field_name} contains invalid characters: {value!r}")
    return normalized


def ensure_coordinates(lat: float, lng: float) -> tuple[float, float]:
    try:
        lat_value = float(lat)
        lng_value = float(lng)
    except (TypeError, ValueError) as exc:
        raise ValueError("Coordinates must be numbers") from exc
    if not -90.0 <= lat_value <= 90.0:
        raise ValueError(f"Invalid latitude: {lat}")
    if not -180.0 <= lng_value <= 180.0:
        raise ValueError(f"Invalid longitude: {lng}")
    return lat_value, lng_value


def ensure_theme(value: str) -> str:
    if value not in THEMES:
        raise ValueError(f"Invalid theme: {value}. Must be one of {list(THEMES)}")
    return value


def ensure_locale_preference(value: str) -> str:
    if value not in LOCALE_PREFERENCES:
        raise ValueError(f"Invalid locale: {value}. Must be one of {list(LOCALE_PREFERENCES)}")
    return value


def parse_month(value: str) -> tuple[int, int]:
    """Parse a ``YYYY-MM`` period filter."""
    period = (value or "").strip()
    if not period:
        raise ValueError("Month filter is empty")
    if not re.fullmatch(r"\d{4}-\d{2}", period):
        raise ValueError("Invalid month format. Use YYYY-MM")
    year, month = map(int, period.split("-"))
    if not 1 <= month <= 12:
        raise ValueError("Invalid month")
    return year, month
