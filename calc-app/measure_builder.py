"""
Tape Calc - Feet / Inch Measure Builder

Compound entry mode started by the feet key on a whole-number entry:

    1  FT  6  1/2   →   feet=1, inches=0.5, in_entry='6'   →   18.5″  "1′ 6 1/2″"

The builder stays active until an operator is pressed (or the expression is
replaced), at which point it is flattened into a single operand.
"""

from __future__ import annotations

from token_types import Operand
from unit_format import FOOT_MARK, format_inch_core, number_text


def parse_entry(text: str) -> float:
    """Parse raw typed inch text, treating empty or malformed text as 0."""
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


class MeasureBuilder:
    """Accumulates feet + inches + a typed inch sub-entry."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.active: bool = False
        self.feet: int = 0
        self.inches: float = 0.0
        self.in_entry: str = ""

    # ------------------------------------------------------------------
    # Entry
    # ------------------------------------------------------------------

    def start_feet(self, whole_feet: int) -> None:
        """Activate the builder with *whole_feet* and no inch component.

        Raises:
            RuntimeError: If a compound entry is already active.
        """
        if self.active:
            raise RuntimeError("measure builder already active; finalize it first")
        self.active = True
        self.feet = int(whole_feet)
        self.inches = 0.0
        self.in_entry = ""

    def append_digit(self, ch: str) -> None:
        self.in_entry += ch

    def append_decimal_point(self) -> None:
        if "." in self.in_entry:
            return
        self.in_entry = self.in_entry + "." if self.in_entry else "0."

    def append_fraction(self, numerator: int, denominator: int) -> None:
        """Add ``numerator/denominator`` inches, folding in any typed inches."""
        value = numerator / denominator
        if self.in_entry:
            self.inches += parse_entry(self.in_entry) + value
            self.in_entry = ""
        else:
            self.inches += value

    def backspace(self) -> None:
        """Drop the last typed character, then the inches, then the builder."""
        if self.in_entry:
            self.in_entry = self.in_entry[:-1]
        elif self.inches > 0:
            self.inches = 0.0
        else:
            self.reset()

    # ------------------------------------------------------------------
    # Read-out
    # ------------------------------------------------------------------

    @property
    def has_content(self) -> bool:
        return bool(self.feet or self.inches or self.in_entry)

    def total(self) -> float:
        return self.feet * 12 + self.inches + parse_entry(self.in_entry)

    def display_label(self) -> str:
        """``F′`` alone, or ``F′ W N/D″`` once an inch component exists."""
        in_val = parse_entry(self.in_entry) + self.inches
        feet_str = f"{self.feet}{FOOT_MARK}"
        if in_val <= 0:
            return feet_str
        return f"{feet_str} {format_inch_core(in_val)}"

    def finalize(self) -> Operand | None:
        """Flatten into a single :class:`Operand` and deactivate.

        Returns ``None`` when the builder is not active.
        """
        if not self.active:
            return None
        operand = Operand(number_text(self.total()), self.display_label())
        self.reset()
        return operand
