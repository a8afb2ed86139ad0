"""Date parsing utilities for rule validity windows."""

from __future__ import annotations

from datetime import date, datetime

# Reasonable date bounds for rule validity windows
MIN_VALID_YEAR = 1900
MAX_VALID_YEAR = 2100


def parse_rule_date(value: str | date | datetime | None) -> date | None:
    """Parse a validity-window date from common formats.

    Supports the following formats:
    - ISO 8601: YYYY-MM-DD, optionally followed by a time (e.g., 2024-01-15T00:00:00)
    - Slashed: YYYY/MM/DD (e.g., 2024/01/15)
    - Compact: YYYYMMDD (e.g., 20240115)

    Args:
        value: Date string, date/datetime object, or None

    Returns:
        Parsed date, or None if value is None or empty

    Raises:
        ValueError: If the value is not a real calendar date between 1900 and 2100

    Examples:
        >>> parse_rule_date("2024-01-15")
        datetime.date(2024, 1, 15)
        >>> parse_rule_date("20240115")
        datetime.date(2024, 1, 15)
        >>> parse_rule_date(None)
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    formats = [
        "%Y-%m-%d",  # ISO 8601
        "%Y/%m/%d",  # Slashed
        "%Y%m%d",  # Compact
    ]

    candidate = text.split("T")[0].split(" ")[0]
    for fmt in formats:
        try:
            parsed = datetime.strptime(candidate, fmt).date()
        except ValueError:
            # strptime raises ValueError for invalid dates like Feb 30
            continue
        if parsed.year < MIN_VALID_YEAR or parsed.year > MAX_VALID_YEAR:
            break
        return parsed

    raise ValueError(f"Invalid date: {text!r}")
