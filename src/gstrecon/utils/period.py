"""Return period utilities.

A return period is one calendar month. The canonical label is ``Mon-YYYY``
(e.g. ``May-2024``); the GST portal writes the same month as ``MMYYYY``
(``052024``) and users often type ``YYYY-MM``.
"""

import calendar
import re
from dataclasses import dataclass
from datetime import date

from dateutil.relativedelta import relativedelta

_MONTHS = {name.lower(): index for index, name in enumerate(calendar.month_abbr) if name}


@dataclass(frozen=True)
class ReturnPeriod:
    """A calendar month a GSTR-2B statement covers."""

    year: int
    month: int

    @property
    def label(self) -> str:
        return f"{calendar.month_abbr[self.month]}-{self.year}"

    @property
    def start_date(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end_date(self) -> date:
        return self.start_date + relativedelta(months=1) - relativedelta(days=1)

    @property
    def portal_code(self) -> str:
        return f"{self.month:02d}{self.year}"

    def window_start(self, trailing_months: int) -> date:
        """First day of the candidate window that starts before the period."""
        return self.start_date - relativedelta(months=trailing_months)

    def __str__(self) -> str:
        return self.label


def parse_return_period(value: str) -> ReturnPeriod:
    """Parse a return period in ``Mon-YYYY``, ``MMYYYY`` or ``YYYY-MM`` form.

    Raises:
        ValueError: If the value is not a recognised month
    """
    text = (value or "").strip()

    match = re.fullmatch(r"([A-Za-z]{3})[-\s]?(\d{4})", text)
    if match:
        month = _MONTHS.get(match.group(1).lower())
        if month is None:
            raise ValueError(f"Invalid month: {match.group(1)}")
        return ReturnPeriod(year=int(match.group(2)), month=month)

    match = re.fullmatch(r"(\d{2})(\d{4})", text)
    if match:
        return _checked(int(match.group(2)), int(match.group(1)), text)

    match = re.fullmatch(r"(\d{4})-(\d{1,2})", text)
    if match:
        return _checked(int(match.group(1)), int(match.group(2)), text)

    raise ValueError(
        f"Return period must look like 'Jan-2025', '012025' or '2025-01', got '{value}'"
    )


def _checked(year: int, month: int, text: str) -> ReturnPeriod:
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in return period '{text}'")
    return ReturnPeriod(year=year, month=month)
