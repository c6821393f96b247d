from __future__ import annotations

import logging
import math
import re
import warnings
from datetime import UTC, date, datetime, timedelta, timezone
from typing import Any

import numpy as np
import pandas as pd

"""Date normalization for spreadsheet cells.

Lead spreadsheets mix Excel serial numbers, US and Indian slash dates and ISO
timestamps within the same column across uploads. ``normalize_date`` tries the
shapes below in a fixed order and returns the calendar day as observed in
Indian Standard Time (UTC+05:30):

1. datetime / pandas.Timestamp (naive values are taken as UTC)
2. number (or all-digit text) > 1e12 -> epoch milliseconds
3. other number -> Excel serial days since 1899-12-30
4. D/M/YYYY or DD/MM/YYYY -> month-first, then day-first
5. YYYY-MM-DD
6. ISO-8601 instant
7. pandas.to_datetime best effort

The slash-date order is a heuristic: "03/04/2024" always resolves to 4 March.
The relative words "now" and "today" are never read as dates.
"""

__all__ = [
    "IST",
    "EXCEL_EPOCH",
    "normalize_date",
]

logger = logging.getLogger(__name__)

IST = timezone(timedelta(hours=5, minutes=30), "IST")
EXCEL_EPOCH = datetime(1899, 12, 30, tzinfo=UTC)
EPOCH_MILLIS_THRESHOLD = 1e12

_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_NUMERIC = re.compile(r"^\d+(\.\d+)?$")
# pandas resolves these against the wall clock
_RELATIVE_WORDS = frozenset({"now", "today"})


def _instant_to_day(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(IST).date().isoformat()


def _is_absent(value: Any) -> bool:
    if value is None or value is pd.NaT:
        return True
    if isinstance(value, (float, np.floating)) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def _from_number(value: float) -> str | None:
    try:
        if value > EPOCH_MILLIS_THRESHOLD:
            instant = datetime.fromtimestamp(value / 1000, tz=UTC)
        else:
            instant = EXCEL_EPOCH + timedelta(days=value)
    except (OverflowError, OSError, ValueError):
        logger.debug("numeric date out of range: %r", value)
        return None
    return _instant_to_day(instant)


def _from_slash_date(match: re.Match[str]) -> str | None:
    first, second, year = (int(g) for g in match.groups())
    # month/day/year first, then day/month/year
    for month, day in ((first, second), (second, first)):
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            continue
    return None


def _from_text(text: str) -> str | None:
    # CSV cells arrive as text, serials and epoch millis included
    if _NUMERIC.match(text):
        return _from_number(float(text))

    m = _SLASH_DATE.match(text)
    if m:
        parsed = _from_slash_date(m)
        if parsed is not None:
            return parsed

    if _ISO_DATE.match(text):
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            pass

    try:
        return _instant_to_day(datetime.fromisoformat(text))
    except ValueError:
        pass

    if text.lower() in _RELATIVE_WORDS:
        logger.debug("relative date keyword ignored: %r", text)
        return None

    try:
        with warnings.catch_warnings():
            # pandas warns when it has to guess the format element by element
            warnings.simplefilter("ignore", UserWarning)
            ts = pd.to_datetime(text, utc=True)
    except (ValueError, TypeError, OverflowError):
        logger.debug("unparseable date: %r", text)
        return None
    if ts is pd.NaT:
        return None
    return _instant_to_day(ts.to_pydatetime())


def normalize_date(value: Any) -> str | None:
    """Return ``value`` as a ``YYYY-MM-DD`` string in IST, or ``None``.

    ``None``, NaN/NaT, empty strings, booleans and anything that cannot be
    parsed all yield ``None``.
    """
    if _is_absent(value) or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, datetime):
        return _instant_to_day(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float, np.integer, np.floating)):
        return _from_number(float(value))
    if isinstance(value, str):
        return _from_text(value.strip())
    logger.debug("unsupported date cell type %s", type(value).__name__)
    return None
