"""Calendar helpers for the monthly reset.

Month boundaries are always computed in Europe/Copenhagen so the rollover
happens at the same instant for every user, regardless of the host timezone.
Anchors are stored as UTC ISO strings with millisecond precision.
"""

import calendar
from collections.abc import Callable
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from config import TIMEZONE

REFERENCE_TZ = ZoneInfo(TIMEZONE)

Clock = Callable[[], datetime]


def _system_clock() -> datetime:
    return datetime.now(timezone.utc)


def to_local(value: datetime) -> datetime:
    """Naive datetimes are taken as wall time in the reference timezone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=REFERENCE_TZ)
    return value.astimezone(REFERENCE_TZ)


def now_local(clock: Clock | None = None) -> datetime:
    return to_local((clock or _system_clock)())


def to_iso(value: datetime) -> str:
    utc = to_local(value).astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_iso(text: str) -> datetime:
    raw = (text or "").strip()
    if not raw:
        raise ValueError("ISO timestamp is empty")
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    return to_local(datetime.fromisoformat(raw))


def _month_start(value: datetime) -> datetime:
    local = to_local(value)
    return datetime(local.year, local.month, 1, tzinfo=REFERENCE_TZ)


def first_of_month(value: datetime | date | None = None, clock: Clock | None = None) -> str:
    if value is None:
        value = now_local(clock)
    elif not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    return to_iso(_month_start(value))


def should_reset_variable_entries(
    last_reset_iso: str | None, now: datetime | None = None
) -> bool:
    if not last_reset_iso:
        return False
    current = to_local(now) if now is not None else now_local()
    anchor = parse_iso(last_reset_iso)
    return (current.year, current.month) > (anchor.year, anchor.month)


def month_bounds(value: datetime | None = None) -> tuple[int, int]:
    """Epoch-millisecond range [start, end] of the local month containing value."""
    start = _month_start(value if value is not None else now_local())
    if start.month == 12:
        next_start = start.replace(year=start.year + 1, month=1)
    else:
        next_start = start.replace(month=start.month + 1)
    start_ms = int(start.timestamp() * 1000)
    end_ms = int(next_start.timestamp() * 1000) - 1
    return start_ms, end_ms


def from_epoch_ms(value: int | float) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).astimezone(REFERENCE_TZ)


def to_epoch_ms(value: datetime) -> int:
    return int(to_local(value).timestamp() * 1000)


def _coerce(value: datetime | str | int | float) -> datetime:
    if isinstance(value, datetime):
        return to_local(value)
    if isinstance(value, str):
        return parse_iso(value)
    return from_epoch_ms(value)


def format_date_dk(value: datetime | str | int | float) -> str:
    return _coerce(value).strftime("%d/%m/%Y")


def format_datetime_dk(value: datetime | str | int | float) -> str:
    return _coerce(value).strftime("%d/%m/%Y kl. %H:%M")


def months_ago(value: datetime, months: int) -> datetime:
    """Shift a local datetime back by whole calendar months, clamping the day."""
    local = to_local(value)
    total = local.year * 12 + (local.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(local.day, calendar.monthrange(year, month)[1])
    return local.replace(year=year, month=month, day=day)

