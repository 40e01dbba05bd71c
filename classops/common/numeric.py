"""Lenient conversions for spreadsheet cells."""

from __future__ import annotations

import math
import re
import warnings
from datetime import datetime
from typing import Optional, Union

import pandas as pd

CellValue = Union[str, int, float, None]

_STRIPPED_CHARS = re.compile(r"[,%]")
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def normalize(value: CellValue) -> float:
    """Convert a raw cell into a finite number.

    ``None``, blank cells, a lone ``"-"`` and anything that does not start
    with a number all become ``0``. Thousands separators and percent signs
    are dropped before parsing, so ``"1,234"`` is ``1234`` and ``"56%"`` is
    ``56``. Like a spreadsheet's own lenient parsing, trailing garbage after
    a leading number is ignored (``"12 mins"`` is ``12``).
    """

    if value is None:
        return 0.0
    if isinstance(value, bool):
        # "TRUE" / "FALSE" cells are text, not numbers.
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0

    text = str(value).strip()
    if text == "" or text == "-":
        return 0.0
    cleaned = _STRIPPED_CHARS.sub("", text)
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    try:
        number = float(match.group(0))
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def is_numeric(value: CellValue) -> bool:
    """True when the whole cell (minus separators and percent signs) is a number."""

    if value is None:
        return False
    cleaned = _STRIPPED_CHARS.sub("", str(value).strip())
    match = _LEADING_NUMBER.match(cleaned)
    return bool(match) and match.end() == len(cleaned)


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Best-effort date parsing; returns ``None`` when the cell is not a date."""

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        with warnings.catch_warnings():
            # Mixed sheet formats make pandas warn about format inference.
            warnings.simplefilter("ignore", UserWarning)
            parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC").tz_localize(None)
    return parsed.to_pydatetime()


def format_duration(total_minutes: float) -> str:
    """Render minutes as ``"1 hour 5 mins"``."""

    minutes_total = int(round(max(total_minutes, 0)))
    hours, minutes = divmod(minutes_total, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours} hour{'s' if hours > 1 else ''}")
    if minutes > 0:
        parts.append(f"{minutes} min{'s' if minutes > 1 else ''}")
    return " ".join(parts) or "0 min"
