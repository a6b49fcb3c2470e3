"""Calendar-day date utilities.

All dates in a task list are plain calendar days in ``YYYY-MM-DD`` form. This
module centralizes validation, parsing and the interval arithmetic used when a
recurring task spawns its next instance.
"""

from calendar import monthrange
from datetime import date, datetime, timedelta
from typing import Optional

from ..exceptions import InvalidDateError, InvalidUnitError

DATE_FORMAT = "%Y-%m-%d"

INTERVAL_UNITS = ("daily", "weekly", "monthly", "yearly")


def today() -> date:
    """Return the current local calendar date."""
    return date.today()


def is_valid_date(value: Optional[str]) -> bool:
    """Check that ``value`` is a canonical YYYY-MM-DD calendar date.

    The string must parse as a real date *and* format back to exactly the same
    text, so ``2025-02-30`` and ``2025-1-05`` are both rejected.
    """
    if not value:
        return False
    try:
        parsed = datetime.strptime(value, DATE_FORMAT)
    except (TypeError, ValueError):
        return False
    return parsed.strftime(DATE_FORMAT) == value


def parse_date(value: str) -> date:
    """Parse a canonical date string.

    Raises:
        InvalidDateError: If the value fails ``is_valid_date``.
    """
    if not is_valid_date(value):
        raise InvalidDateError(value)
    return datetime.strptime(value, DATE_FORMAT).date()


def format_date(value: date) -> str:
    """Format a date in the stored YYYY-MM-DD form."""
    return value.strftime(DATE_FORMAT)


def _add_months(value: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    target_year = value.year + month_index // 12
    target_month = month_index % 12 + 1
    max_day = monthrange(target_year, target_month)[1]
    return date(target_year, target_month, min(value.day, max_day))


def add_interval(value: date, unit) -> date:
    """Advance ``value`` by one recurrence interval.

    Args:
        value: Starting calendar date.
        unit: ``daily``, ``weekly``, ``monthly`` or ``yearly`` (a string or an
            enum whose ``value`` is one of those).

    Month and year steps clamp to the last valid day, so Jan 31 + monthly is
    the last day of February and Feb 29 + yearly is Feb 28.

    Raises:
        InvalidUnitError: For any other unit.
    """
    unit_name = getattr(unit, "value", unit)
    if isinstance(unit_name, str):
        unit_name = unit_name.lower()

    if unit_name == "daily":
        return value + timedelta(days=1)
    elif unit_name == "weekly":
        return value + timedelta(weeks=1)
    elif unit_name == "monthly":
        return _add_months(value, 1)
    elif unit_name == "yearly":
        return _add_months(value, 12)

    raise InvalidUnitError(str(unit_name))


def days_until(value: date, reference: Optional[date] = None) -> int:
    """Number of whole days from ``reference`` (default today) to ``value``."""
    reference = reference or today()
    return (value - reference).days
