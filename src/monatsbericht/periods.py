"""
Reporting period extraction.

A period is derived either from the booking date of every single row or from
the date range DKB writes into the preamble of an export.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime

logger = logging.getLogger(__name__)

MONTH_NAMES = (
    "Januar",
    "Februar",
    "März",
    "April",
    "Mai",
    "Juni",
    "Juli",
    "August",
    "September",
    "Oktober",
    "November",
    "Dezember",
)

DATE_FORMATS = ("%d.%m.%Y", "%d.%m.%y")

_DATE_RANGE = re.compile(
    r"(\d{2})\.(\d{2})\.(\d{4})\s*-\s*\d{2}\.\d{2}\.\d{4}",
)


@dataclass(frozen=True)
class Period:
    """Reporting period: canonical key plus human readable label."""

    key: str
    label: str


UNKNOWN_PERIOD = Period(key="unbekannt", label="Unbekannt")


class PeriodStrategy:
    """Names of the supported period strategies."""

    ROW = "row"
    PREAMBLE = "preamble"

    ALL = (ROW, PREAMBLE)


def period_for(year: int, month: int) -> Period:
    """Build the period for a calendar month."""
    return Period(key=f"{year:04d}-{month:02d}", label=f"{MONTH_NAMES[month - 1]} {year}")


def parse_booking_date(value: str) -> date | None:
    """Parse a ``DD.MM.YYYY`` (or ``DD.MM.YY``) booking date."""
    value = value.strip()
    for date_format in DATE_FORMATS:
        try:
            return datetime.strptime(value, date_format).date()
        except ValueError:
            continue
    return None


def period_from_date(booking_date: date | None) -> Period:
    """Period of a single booking, the unknown period if the date is missing."""
    if booking_date is None:
        return UNKNOWN_PERIOD
    return period_for(booking_date.year, booking_date.month)


def period_from_preamble(lines: Iterable[str], delimiter: str = ";") -> Period:
    """
    Find the statement period in the raw lines of an export.

    DKB writes a line like ``"Zeitraum:";"01.05.2025 - 31.05.2025"``. The first
    date of the first range found determines the period.

    Args:
        lines: Untrimmed lines of the file
        delimiter: Field delimiter of the CSV

    Returns:
        The period, or UNKNOWN_PERIOD if no date range exists
    """
    for line in lines:
        for cell in line.split(delimiter):
            match = _DATE_RANGE.search(cell.strip().strip('"'))
            if not match:
                continue
            day, month, year = (int(part) for part in match.groups())
            try:
                date(year, month, day)
            except ValueError:
                logger.debug(f"Ignoring invalid date range {cell!r}")
                continue
            return period_for(year, month)

    logger.info("No statement period found in file, using unknown period")
    return UNKNOWN_PERIOD
