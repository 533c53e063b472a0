"""
Calendar helpers pinned to the Asia/Riyadh civil calendar

Riyadh is UTC+3 with no daylight saving, so a fixed offset is used instead
of a tz database lookup. Business weeks run Saturday to Friday.
Reference: https://docs.python.org/3/library/datetime.html#timezone-objects
"""
import calendar
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional

from retailops.core.config import Settings
from retailops.core.exceptions import ValidationError

RIYADH_OFFSET = timedelta(hours=3)
RIYADH_TZ = timezone(RIYADH_OFFSET, "Asia/Riyadh")

# Python weekday(): Monday=0 ... Sunday=6
SATURDAY = 5
FRIDAY = 4

_MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")

# Arabic-Indic (U+0660..) and Extended Arabic-Indic (U+06F0..) digits
_ARABIC_DIGITS = str.maketrans(
    "٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹",
    "01234567890123456789",
)


def riyadh_now() -> datetime:
    """Current instant expressed in Riyadh time"""
    return datetime.now(RIYADH_TZ)


def riyadh_today() -> date:
    """Current Riyadh calendar date"""
    return riyadh_now().date()


def to_riyadh_date(instant: datetime) -> date:
    """Riyadh calendar date of an instant (naive values are treated as UTC)"""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(RIYADH_TZ).date()


def normalize_month_key(key: str) -> str:
    """Trim and convert Arabic digits so '٢٠٢٦-٠٢' becomes '2026-02'"""
    return (key or "").strip().translate(_ARABIC_DIGITS)


def parse_month_key(key: str) -> tuple[int, int]:
    """
    Parse a YYYY-MM month key

    Raises:
        ValidationError: If the key is not a valid month
    """
    normalized = normalize_month_key(key)
    match = _MONTH_KEY_RE.match(normalized)
    if not match:
        raise ValidationError("month must be YYYY-MM", field="month")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValidationError("month must be YYYY-MM", field="month")
    return year, month


def month_key_for(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def get_month_dates(key: str) -> tuple[date, date]:
    """First day of the month and first day of the next month"""
    year, month = parse_month_key(key)
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def get_month_range(key: str) -> tuple[datetime, datetime]:
    """
    Month range as calendar-day keys: [YYYY-MM-01T00:00Z, next month 00:00Z)

    Sales and leave dates are stored as Riyadh calendar days, so the day key
    itself is the boundary. Use get_month_instant_range for timestamp columns.
    """
    start, end = get_month_dates(key)
    return (
        datetime.combine(start, time.min, tzinfo=timezone.utc),
        datetime.combine(end, time.min, tzinfo=timezone.utc),
    )


def get_month_instant_range(key: str) -> tuple[datetime, datetime]:
    """Riyadh-midnight month boundaries as UTC instants (Feb 1 -> Jan 31 21:00Z)"""
    start, end = get_month_dates(key)
    return riyadh_midnight_utc(start), riyadh_midnight_utc(end)


def riyadh_midnight_utc(day: date) -> datetime:
    """00:00 Riyadh on the given day, as an aware UTC datetime"""
    local = datetime.combine(day, time.min, tzinfo=RIYADH_TZ)
    return local.astimezone(timezone.utc)


def get_days_in_month(key: str) -> int:
    year, month = parse_month_key(key)
    return calendar.monthrange(year, month)[1]


def is_friday(day: date) -> bool:
    return day.weekday() == FRIDAY


def get_week_start(day: date) -> date:
    """Saturday on or before the given date"""
    return day - timedelta(days=(day.weekday() - SATURDAY) % 7)


def get_week_range_for_date(day: date) -> tuple[date, date]:
    """[Saturday, next Saturday) containing the date"""
    start = get_week_start(day)
    return start, start + timedelta(days=7)


def week_dates(week_start: date) -> list[date]:
    """The seven dates of a Saturday-start week"""
    return [week_start + timedelta(days=offset) for offset in range(7)]


def iter_dates(start: date, end_exclusive: date) -> Iterator[date]:
    current = start
    while current < end_exclusive:
        yield current
        current += timedelta(days=1)


def intersect_ranges(
    a_start: date, a_end: date, b_start: date, b_end: date
) -> Optional[tuple[date, date]]:
    """Intersection of two half-open ranges, or None when they don't overlap"""
    start = max(a_start, b_start)
    end = min(a_end, b_end)
    if start >= end:
        return None
    return start, end


def week_index_in_year(day: date) -> int:
    """
    Zero-based week index counted from the first Saturday of the year.
    Days before that Saturday belong to week 0. Team rotation parity uses it.
    """
    start_of_year = date(day.year, 1, 1)
    first_saturday = start_of_year + timedelta(days=(SATURDAY - start_of_year.weekday()) % 7)
    if day < first_saturday:
        return 0
    return (day - first_saturday).days // 7


def is_ramadan(day: date, settings: Settings) -> bool:
    start, end = settings.ramadan_range
    return start <= day <= end


def parse_date_str(value: str, field: str = "date") -> date:
    """
    Parse a YYYY-MM-DD string (Arabic digits accepted)

    Raises:
        ValidationError: naming the offending field
    """
    raw = normalize_month_key(value) if isinstance(value, str) else value
    try:
        return date.fromisoformat(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be YYYY-MM-DD", field=field)
