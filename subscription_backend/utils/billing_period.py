"""Billing period parsing utilities.

Parses the ISO 8601 duration strings used for plan periods (P1Y, P1M, P30D)
into timedelta values. Months are 30 days and years 365 days, which is what
the paid-period arithmetic has always assumed.
"""

import re
from datetime import timedelta

DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 365

_UNIT_DAYS = {
    "D": 1,
    "W": DAYS_PER_WEEK,
    "M": DAYS_PER_MONTH,
    "Y": DAYS_PER_YEAR,
}

_PERIOD_PATTERN = re.compile(r"^P(\d+)?([DWMY])$")


def parse_billing_period(period: str) -> timedelta:
    """Parse an ISO 8601 duration string into a timedelta.

    Supported forms: P[n]D, P[n]W, P[n]M, P[n]Y (n defaults to 1).

    Args:
        period: Duration string (e.g., "P1Y", "P30D")

    Returns:
        Duration as a timedelta

    Raises:
        ValueError: If the period string is invalid or unsupported

    Examples:
        >>> parse_billing_period("P1Y")
        datetime.timedelta(days=365)

        >>> parse_billing_period("P2W")
        datetime.timedelta(days=14)
    """
    if not period or not isinstance(period, str):
        raise ValueError("Period must be a non-empty string")

    normalized = period.strip().upper()
    match = _PERIOD_PATTERN.match(normalized)
    if not match:
        raise ValueError(
            f"Unsupported period format: '{period}'. "
            "Supported formats: P[n]D, P[n]W, P[n]M, P[n]Y"
        )

    number_str, unit = match.groups()
    number = int(number_str) if number_str else 1
    if number <= 0:
        raise ValueError(f"Period number must be positive, got: {number}")

    return timedelta(days=number * _UNIT_DAYS[unit])


def validate_billing_period(period: str) -> bool:
    """Return True if ``period`` parses as a billing period."""
    try:
        parse_billing_period(period)
        return True
    except (ValueError, TypeError):
        return False
