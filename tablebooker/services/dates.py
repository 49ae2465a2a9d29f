"""
Target date resolution for table searches.
"""

from typing import Optional

import pendulum
from pendulum import Date


def resolve_target_date(
    value: Optional[str],
    timezone: str,
    max_days_ahead: int,
    today: Optional[Date] = None,
) -> Date:
    """
    Parse a YYYY-MM-DD reservation date, defaulting to today.

    Args:
        value: Date string or None for today
        timezone: IANA timezone used to determine "today"
        max_days_ahead: Latest bookable date, counted from today
        today: Override for the current date

    Raises:
        ValueError: If the date cannot be parsed, is too far ahead
    """
    today = today or pendulum.today(timezone).date()

    if not value:
        return today

    try:
        target = pendulum.from_format(value, "YYYY-MM-DD", tz=timezone).date()
    except ValueError as exc:
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD") from exc

    latest = today.add(days=max_days_ahead)
    if target > latest:
        raise ValueError(
            f"Date {target.to_date_string()} is more than {max_days_ahead} days ahead "
            f"(latest: {latest.to_date_string()})"
        )

    return target
