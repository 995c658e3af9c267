"""Date parsing utilities."""

from datetime import date, datetime, timedelta
from typing import Optional

from dateutil import parser as date_parser

# Layouts seen in GSTR-2B downloads, in the order they are tried.
DOCUMENT_DATE_FORMATS = ("%d-%m-%Y", "%d/%m/%Y", "%Y-%m-%d", "%d.%m.%Y")


def parse_date(date_str: str) -> date:
    """Parse a user-supplied date string into a date object.

    Supports absolute dates ("2024-01-15", "15 Jan 2024") and the relative
    words "today", "yesterday" and "tomorrow". Ambiguous numeric dates are
    read day first, as Indian invoices are written.

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    parsed = parse_document_date(date_str)
    if parsed is not None:
        return parsed

    try:
        dt = date_parser.parse(date_str, dayfirst=True)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_document_date(value: Optional[str]) -> Optional[date]:
    """Parse a date as written in a GSTR-2B document.

    Only the explicit layouts in DOCUMENT_DATE_FORMATS are accepted; there is
    no guessing, because a wrong guess silently breaks date-window matching.

    Returns:
        The parsed date, or None when the value is empty or unrecognised
    """
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None

    for fmt in DOCUMENT_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None
