"""
Tape Calc - Inch / Feet Formatting

Pure functions that turn a value in inches into the strings shown on the
result lines, the history line and the memory / tape labels.

Exports:
    snap_to_sixteenth    – nearest 1/16″ (halves round up)
    reduce_fraction      – n/d reduced by GCD, carrying a whole unit when n == d
    rounding_arrow       – ▴ / ▾ / '' depending on snap direction
    format_inch          – {fraction: '▾ 3 5/16″', decimal: '3.3333″'}
    format_feet          – {fraction: '1′ 6″', decimal: '1.5000′'}
    format_label         – compact fraction without arrow or inch mark
    parse_mixed_inch     – '1′ 6 1/2″' → 18.5
    number_text          – canonical operand string for a float
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

INCH_MARK  = "″"
FOOT_MARK  = "′"
ARROW_UP   = "▴"
ARROW_DOWN = "▾"
MINUS_SIGN = "−"

# Tolerance for "already sits on a sixteenth boundary".
SNAP_EPS = 1e-6

_PRETTY_OPS = {"*": "×", "/": "÷", "-": MINUS_SIGN, "+": "+"}

_QUOTE_MAP = str.maketrans({
    '"': INCH_MARK, "”": INCH_MARK, "“": INCH_MARK,
    "'": FOOT_MARK, "’": FOOT_MARK, "‘": FOOT_MARK,
    MINUS_SIGN: "-",
})

_MIXED_RE = re.compile(
    r"""^\s*
    (?P<sign>[-+])?\s*
    (?:(?P<feet>\d+(?:\.\d*)?)\s*′)?\s*
    (?:(?P<whole>\d+(?:\.\d*)?|\.\d+)(?=\s|″|$))?\s*
    (?:(?P<num>\d+)\s*/\s*(?P<den>\d+))?\s*
    ″?\s*$""",
    re.VERBOSE,
)


@dataclass(frozen=True)
class Formatted:
    """A value rendered for the two result lines."""
    fraction: str
    decimal: str


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _round_half_up(x: float) -> float:
    return math.floor(x + 0.5)


def _split_sixteenths(magnitude: float) -> tuple[int, int, int]:
    """Split a non-negative inch value into (whole, numerator, denominator).

    The fractional part is snapped to sixteenths and reduced; a fraction that
    reduces to a whole unit is carried into *whole*.
    """
    sixteenths = int(_round_half_up(magnitude * 16))
    whole, rem = divmod(sixteenths, 16)
    carry, n, d = reduce_fraction(rem, 16)
    return whole + carry, n, d


def _mixed_core(whole: int, n: int, d: int) -> str:
    if n == 0:
        return f"{whole}{INCH_MARK}"
    if whole:
        return f"{whole} {n}/{d}{INCH_MARK}"
    return f"{n}/{d}{INCH_MARK}"


def strip_arrow(text: str) -> str:
    """Remove a rounding arrow (and the space after it) from *text*."""
    return re.sub(r"[▴▾]\s*", "", text or "")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def snap_to_sixteenth(x: float) -> float:
    """Return *x* rounded to the nearest 1/16 (exact halves round up)."""
    return _round_half_up(x * 16) / 16


def reduce_fraction(numerator: int, denominator: int) -> tuple[int, int, int]:
    """Reduce ``numerator/denominator`` by their GCD.

    Returns ``(carry, n, d)`` where *carry* is 1 when the fraction reduced to
    a whole unit (n == d), in which case the fraction itself becomes 0/1.
    """
    g = math.gcd(numerator, denominator) or 1
    n, d = numerator // g, denominator // g
    if n != 0 and n == d:
        return 1, 0, 1
    return 0, n, d


def rounding_arrow(exact: float, rounded: float) -> str:
    """Return ``'▴ '`` if snapping rounded up, ``'▾ '`` if down, else ``''``.

    The arrow points at where the exact value lies relative to the shown
    fraction.
    """
    delta = exact - rounded
    if abs(delta) < SNAP_EPS:
        return ""
    return f"{ARROW_UP} " if delta > 0 else f"{ARROW_DOWN} "


def format_exact_decimal(x: float) -> str:
    """Fixed 4-place decimal with negative zero normalised to ``0.0000``."""
    s = f"{x:.4f}"
    return "0.0000" if s == "-0.0000" else s


def format_inch_core(value: float) -> str:
    """Unsigned ``'W N/D″'`` text for the sixteenth-snapped magnitude of *value*."""
    return _mixed_core(*_split_sixteenths(abs(value)))


def format_inch(value: float) -> Formatted:
    """Format *value* (inches) as a sixteenth fraction and an exact decimal."""
    rounded = snap_to_sixteenth(value)
    sign = "-" if rounded < 0 else ""
    arrow = rounding_arrow(value, rounded)
    fraction = sign + arrow + format_inch_core(rounded)
    decimal = format_exact_decimal(value) + INCH_MARK
    return Formatted(fraction, decimal)


def format_feet(value: float) -> Formatted:
    """Format *value* (inches) as feet plus sixteenth-snapped inches."""
    rounded = snap_to_sixteenth(value)
    arrow = rounding_arrow(value, rounded)
    sign = "-" if rounded < 0 else ""
    r_abs = abs(rounded)

    feet = math.floor(r_abs / 12)
    whole_in, n, d = _split_sixteenths(r_abs - feet * 12)
    if whole_in >= 12:
        feet += 1
        whole_in -= 12

    if whole_in == 0 and n == 0:
        inch_str = ""
    else:
        inch_str = " " + _mixed_core(whole_in, n, d)

    fraction = f"{sign}{arrow}{feet}{FOOT_MARK}{inch_str}"
    decimal = format_exact_decimal(value / 12) + FOOT_MARK
    return Formatted(fraction, decimal)


def format_result(value: float, display_mode: str = "inch") -> Formatted:
    """Dispatch to :func:`format_feet` or :func:`format_inch` by *display_mode*."""
    if display_mode == "feet":
        return format_feet(value)
    return format_inch(value)


def format_label(value: float) -> str:
    """Compact label (no arrow, no inch mark) used for memory and tape commits."""
    return strip_arrow(format_inch(value).fraction).replace(INCH_MARK, "")


def pretty_op(op: str) -> str:
    """Return the display glyph for an operator kind."""
    return _PRETTY_OPS.get(op, op)


def number_text(x: float) -> str:
    """Canonical operand string: ``18`` for integral values, else shortest repr."""
    if math.isfinite(x) and x == int(x) and abs(x) < 1e15:
        return str(int(x))
    return repr(float(x))


def parse_mixed_inch(text: str | None) -> float | None:
    """Parse strings like ``'1 11/32'``, ``'19/32″'``, ``'1′ 6 1/2″'`` to inches.

    Rounding arrows and a leading sign are accepted; straight quotes are
    read as foot / inch marks.  Returns ``None`` when *text* does not parse.
    """
    if not text or not isinstance(text, str):
        return None
    s = strip_arrow(text.translate(_QUOTE_MAP)).strip()
    m = _MIXED_RE.match(s)
    if m is None or not any(m.group(k) for k in ("feet", "whole", "num")):
        return None

    feet = float(m.group("feet")) if m.group("feet") else 0.0
    whole = float(m.group("whole")) if m.group("whole") else 0.0
    frac = 0.0
    if m.group("num"):
        den = int(m.group("den"))
        if den == 0:
            return None
        frac = int(m.group("num")) / den

    total = feet * 12 + whole + frac
    return -total if m.group("sign") == "-" else total
