"""
Parsing of German/Euro formatted amounts.
"""

import logging
import math
import re

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")
# Leading numeric prefix, the same part a lenient float parser would consume
_NUMBER_PREFIX = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")


class MalformedAmountError(ValueError):
    """Exception raised when an amount string cannot be interpreted."""


def clean_amount(raw: str) -> str:
    """Normalize a German amount string to ``[0-9.-]`` with a decimal point."""
    cleaned = _WHITESPACE.sub("", raw)
    cleaned = cleaned.replace("€", "")
    cleaned = cleaned.replace(".", "")
    cleaned = cleaned.replace(",", ".", 1)
    return _NON_NUMERIC.sub("", cleaned)


def parse_amount(raw: str | None) -> float:
    """
    Parse a German/Euro formatted amount.

    Args:
        raw: Amount as found in the export, e.g. ``"-1.234,56 €"``

    Returns:
        Signed amount

    Raises:
        MalformedAmountError: If the string is empty or holds no number
    """
    if not raw:
        raise MalformedAmountError("Amount is empty")

    cleaned = clean_amount(raw)
    match = _NUMBER_PREFIX.match(cleaned)
    if not match:
        raise MalformedAmountError(f"No number in amount {raw!r}")

    value = float(match.group(0))
    if math.isnan(value) or math.isinf(value):
        raise MalformedAmountError(f"Amount {raw!r} is not a finite number")
    return value


def parse_euro(raw: str | None) -> float:
    """Parse an amount, resolving malformed input to ``0``."""
    try:
        return parse_amount(raw)
    except MalformedAmountError as e:
        logger.debug(f"Treating amount as 0: {e}")
        return 0.0
