"""
FleetRent - Shared Utilities
Common helper functions
"""

import calendar
import re
from datetime import datetime, date, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_date(value: str) -> str:
    """
    Normalize date to ISO format (YYYY-MM-DD)
    Accepts: DD.MM.YYYY, DD-MM-YYYY or YYYY-MM-DD
    """
    if not value:
        return ""

    value = value.strip()

    # Try DD.MM.YYYY / DD-MM-YYYY
    match = re.match(r'^(\d{2})[.-](\d{2})[.-](\d{4})$', value)
    if match:
        day, month, year = match.groups()
        return f"{year}-{month}-{day}"

    # Try YYYY-MM-DD
    if re.match(r'^\d{4}-\d{2}-\d{2}$', value):
        return value

    raise ValueError(f"Invalid date format: {value}. Expected DD.MM.YYYY or YYYY-MM-DD")


def parse_date(value: str) -> date:
    """Parse date string to date object"""
    normalized = normalize_date(value)
    return datetime.strptime(normalized, "%Y-%m-%d").date()


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def is_sunday(year: int, month: int, day: int) -> bool:
    return date(year, month, day).weekday() == 6


def validate_month(year: int, month: int) -> None:
    """Validate a (year, month) pair"""
    if not (1 <= month <= 12):
        raise ValueError(f"Month must be between 1 and 12. Got: {month}")
    if not (2000 <= year <= 2100):
        raise ValueError(f"Year must be between 2000 and 2100. Got: {year}")


def round2(amount: float) -> float:
    """Round half-up to 2 decimals (money)"""
    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

