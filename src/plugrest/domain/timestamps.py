"""Timestamp normalization.

The platform stores times as milliseconds since the Unix epoch.  Callers
may pass a ``datetime``/``date``, an epoch-milliseconds number, a numeric
string, or a date string (ISO 8601 or RFC 2822).  Naive datetimes are
taken as UTC.

INVARIANT: ``normalize_timestamp`` is idempotent on its own output.
"""

from __future__ import annotations

import math
import re
from datetime import UTC, date, datetime, time
from email.utils import parsedate_to_datetime
from typing import Any

DECIMAL_LITERAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\Z", re.ASCII)


def parse_number(value: Any) -> int | float | None:
    """Return *value* as a finite number, or None.

    Numbers pass through (bools excluded).  Strings are accepted only when
    they hold a plain decimal literal (optional sign, fraction, exponent);
    digit-only literals become ``int``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not DECIMAL_LITERAL.match(text):
            return None
        if text.lstrip("+-").isdigit():
            return int(text)
        number = float(text)
        return number if math.isfinite(number) else None
    return None


def collapse_integral(number: int | float) -> int | float:
    """``10.0`` becomes ``10``; other values are returned unchanged."""
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return round(moment.timestamp() * 1000)


def _parse_date_string(text: str) -> datetime | None:
    candidate = text.strip()
    if candidate.endswith(("z", "Z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None


def normalize_timestamp(value: Any) -> int | float | None:
    """Convert any accepted timestamp form to epoch milliseconds.

    Returns None when *value* cannot be interpreted as a timestamp.

    Examples:
        >>> normalize_timestamp(1500000000000)
        1500000000000
        >>> normalize_timestamp("2017-07-14T02:40:00Z")
        1500000000000
        >>> normalize_timestamp("yesterday") is None
        True
    """
    if isinstance(value, datetime):
        return _epoch_ms(value)
    if isinstance(value, date):
        return _epoch_ms(datetime.combine(value, time()))
    number = parse_number(value)
    if number is not None:
        return collapse_integral(number)
    if isinstance(value, str):
        parsed = _parse_date_string(value)
        return None if parsed is None else _epoch_ms(parsed)
    return None
