"""Locale-tolerant value parsers for spreadsheet cells (pt-BR formatting)."""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

import pandas as pd

_EMPTY_MARKERS = {"", "-", "null"}
_NUMERIC_PREFIX = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_CURRENCY_NOISE = re.compile(r"[R$\s]")

WEEKDAYS_PT_BR = [
    "segunda-feira",
    "terça-feira",
    "quarta-feira",
    "quinta-feira",
    "sexta-feira",
    "sábado",
    "domingo",
]


class DateParseError(ValueError):
    """Raised for unparseable dates under the ``RAISE`` policy."""


class UnparseableDate(str, Enum):
    """What :func:`parse_date` does with empty or unreadable input."""

    USE_CURRENT_INSTANT = "use_current_instant"
    RAISE = "raise"


class InvalidNumber(str, Enum):
    """What :func:`parse_int_like` does with unreadable input."""

    ZERO = "zero"
    PROPAGATE_NAN = "propagate_nan"


# ─────────────────────────────────────────────────────────────────────────────
# Numbers
# ─────────────────────────────────────────────────────────────────────────────


def _parse_float_prefix(text: str) -> float:
    m = _NUMERIC_PREFIX.match(text)
    if not m:
        return math.nan
    return float(m.group(0))


def parse_currency(value: Any) -> float:
    """Parse ``"R$ 1.234,56"``-style text into a float. Never raises.

    ``None``, ``""``, ``"-"``, ``"null"`` and anything without a numeric
    prefix all yield ``0``.
    """
    if value is None:
        return 0.0
    text = _CURRENCY_NOISE.sub("", str(value)).strip()
    if text in _EMPTY_MARKERS:
        return 0.0
    text = text.replace(".", "").replace(",", ".", 1)
    num = _parse_float_prefix(text)
    return 0.0 if math.isnan(num) else num


def parse_int_like(value: Any, on_invalid: InvalidNumber = InvalidNumber.ZERO):
    """Parse an integer count such as ``"1.234"``; truncates toward zero.

    Unreadable text returns ``0`` under ``InvalidNumber.ZERO`` and ``nan``
    under ``InvalidNumber.PROPAGATE_NAN``.
    """
    if value is None:
        return 0
    text = str(value).strip()
    if text in _EMPTY_MARKERS:
        return 0
    text = re.sub(r"\s", "", text.replace(".", "")).replace(",", ".", 1)
    num = _parse_float_prefix(text)
    if math.isnan(num):
        return math.nan if on_invalid == InvalidNumber.PROPAGATE_NAN else 0
    return math.trunc(num)


# ─────────────────────────────────────────────────────────────────────────────
# Dates
# ─────────────────────────────────────────────────────────────────────────────


def _at_noon(dt: datetime) -> datetime:
    return dt.replace(hour=12, minute=0, second=0, microsecond=0)


def _rolled_date(year: int, month: int, day: int) -> datetime:
    """Calendar date where out-of-range months/days roll into the next unit.

    ``(2024, 2, 31)`` becomes 2 March 2024, ``(2024, 13, 1)`` 1 January 2025.
    """
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1, 12) + timedelta(days=day - 1)


def _parse_slash_date(text: str) -> Optional[datetime]:
    parts = text.split("/")
    if len(parts) != 3:
        return None
    matches = [_INT_PREFIX.match(p) for p in parts]
    if not all(matches):
        return None
    day, month, year = (int(m.group(1)) for m in matches)
    if year < 100:
        year += 2000
    try:
        return _rolled_date(year, month, day)
    except (ValueError, OverflowError):
        return None


def _parse_iso_date(text: str) -> Optional[datetime]:
    try:
        ts = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return _at_noon(ts.to_pydatetime())


def parse_date(
    text: Optional[str],
    on_unparseable: UnparseableDate = UnparseableDate.USE_CURRENT_INSTANT,
) -> datetime:
    """Parse ``DD/MM/YYYY`` (or ``DD/MM/YY``) and ISO-like dates at 12:00.

    Noon keeps the calendar day stable when dates are later compared against
    start/end-of-day bounds.
    """
    clean = (text or "").strip()
    parsed: Optional[datetime] = None
    if clean:
        if "/" in clean:
            parsed = _parse_slash_date(clean)
            if parsed is None and len(clean.split("/")) != 3:
                parsed = _parse_iso_date(clean)
        else:
            parsed = _parse_iso_date(clean)
    if parsed is not None:
        return parsed
    if on_unparseable == UnparseableDate.RAISE:
        raise DateParseError(f"Unparseable date: {text!r}")
    return datetime.now()


def format_display_date(dt: datetime) -> str:
    """pt-BR short date, e.g. ``01/03/2024``."""
    return dt.strftime("%d/%m/%Y")


def weekday_name(dt: datetime) -> str:
    """pt-BR long weekday name, e.g. ``sexta-feira``."""
    return WEEKDAYS_PT_BR[dt.weekday()]
