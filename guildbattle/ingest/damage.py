"""Damage value parsing and display formatting.

Spreadsheet and OCR cells are noisy: blanks, "N/A", thousands separators,
"2.5 Billion". Parsing is total and degrades to zero instead of raising.
"""

import math
import re
from decimal import Decimal, InvalidOperation

BILLION = 10 ** 9

_UNIT_RE = re.compile(r"\s*billions?\s*$", re.IGNORECASE)
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?|\.\d+")
_COUNT_RE = re.compile(r"\d+")

# (threshold, suffix), largest first
_SCALES = [
    (10 ** 12, "T"),
    (10 ** 9, "B"),
    (10 ** 6, "M"),
    (10 ** 3, "K"),
]


def parse_damage(raw, scale: int = 1) -> int:
    """Convert a damage cell into raw damage points (int >= 0).

    ``scale`` multiplies values that carry no unit word; a trailing
    "Billion"/"Billions" always multiplies by 10^9.

    >>> parse_damage("53,701,335,417")
    53701335417
    >>> parse_damage("2.5 Billion")
    2500000000
    >>> parse_damage("53.70", scale=10**9)
    53700000000
    >>> parse_damage("N/A")
    0
    """
    if raw is None or isinstance(raw, bool):
        return 0

    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            return 0
        value = Decimal(str(raw))
        return _to_points(value, scale)

    text = str(raw).strip()
    multiplier = scale
    unit = _UNIT_RE.search(text)
    if unit:
        multiplier = BILLION
        text = text[:unit.start()]

    text = re.sub(r"[,\s _]", "", text)
    match = _NUMBER_RE.search(text)
    if not match or text[:match.start()].endswith("-"):
        return 0
    try:
        value = Decimal(match.group(0))
    except InvalidOperation:
        return 0
    return _to_points(value, multiplier)


def _to_points(value: Decimal, multiplier: int) -> int:
    points = int(value * multiplier)
    return max(points, 0)


def parse_count(raw) -> int:
    """Parse a battle/ticket count cell ("9", "x9", 9.0) into an int >= 0."""
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            return 0
        return max(int(raw), 0)
    match = _COUNT_RE.search(str(raw))
    return int(match.group(0)) if match else 0


def format_damage(damage: int) -> str:
    """Render damage with a T/B/M/K suffix at one decimal place.

    Lossy below 0.1 of the chosen unit; parse_damage(format_damage(x)) is
    not expected to give x back.

    >>> format_damage(113055802579)
    '113.1B'
    >>> format_damage(999)
    '999'
    """
    for threshold, suffix in _SCALES:
        if damage >= threshold:
            return f"{damage / threshold:.1f}{suffix}"
    return str(int(damage))
