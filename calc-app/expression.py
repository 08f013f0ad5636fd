"""
Tape Calc - Expression Token Store

Holds the in-progress calculation: a sequence of operand / operator tokens,
one partially typed "current entry", and the feet/inch Measure Builder.
Only one of the current entry and the Measure Builder is ever live.

The store never evaluates anything itself; ``evaluator.build_preview`` reads
it to produce the live result, and ``render_history_text`` produces the
human-readable history line.
"""

from __future__ import annotations

import math
import re

from measure_builder import MeasureBuilder
from token_types import (
    ADDITIVE,
    MULTIPLICATIVE,
    OPERATORS,
    Operand,
    Operator,
    Token,
    is_operator,
)
from unit_format import (
    FOOT_MARK,
    INCH_MARK,
    MINUS_SIGN,
    format_result,
    number_text,
    pretty_op,
    strip_arrow,
)

_WHOLE_RE        = re.compile(r"^-?\d+$")
_WHOLE_OR_DOT_RE = re.compile(r"^[+-]?\d+\.?$")
_DECIMAL_RE      = re.compile(r"^-?\d+\.\d+$")
_FRACTION_RE     = re.compile(r"^\s*([+-])?\s*(\d+)\s*/\s*(\d+)\s*$")
_MIXED_LABEL_RE  = re.compile(r"^\s*[+-]?\d+\s+\d+/\d+\s*$")
_FRAC_LABEL_RE   = re.compile(r"^\s*[+-]?\d+/\d+\s*$")


def is_typed_fraction(text: str) -> bool:
    return bool(text) and _FRACTION_RE.match(text) is not None


def fraction_value(text: str) -> float | None:
    """``'3/8'`` → 0.375; ``None`` for non-fractions or a zero denominator."""
    m = _FRACTION_RE.match(text or "")
    if m is None:
        return None
    n, d = int(m.group(2)), int(m.group(3))
    if d == 0:
        return None
    return (-1 if m.group(1) == "-" else 1) * n / d


class Expression:
    """The single active calculation: tokens + current entry + measure builder."""

    def __init__(self) -> None:
        self.tokens: list[Token] = []
        self.current_entry: str = ""
        self.current_display: str = ""
        self.measure = MeasureBuilder()

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def trailing_operator(self) -> Operator | None:
        if self.tokens and is_operator(self.tokens[-1]):
            return self.tokens[-1]
        return None

    @property
    def is_empty(self) -> bool:
        return not self.tokens and not self.current_entry and not self.measure.active

    def _last_operand_index(self) -> int:
        i = len(self.tokens) - 1
        while i >= 0 and is_operator(self.tokens[i]):
            i -= 1
        return i

    def _entry_operand(self) -> Operand | None:
        """The operand the current entry would commit as, without committing it."""
        if not self.current_entry:
            return None
        display = self.current_display or None
        if is_typed_fraction(self.current_entry):
            value = fraction_value(self.current_entry)
            if value is not None:
                return Operand(number_text(value), display or self.current_entry.strip())
        return Operand(self.current_entry, display)

    def live_operand(self) -> Operand | None:
        """The uncommitted term: measure builder total or current entry."""
        if self.measure.active:
            return Operand(number_text(self.measure.total()), self.measure.display_label())
        return self._entry_operand()

    # ------------------------------------------------------------------
    # Token pushes
    # ------------------------------------------------------------------

    def push_operand(self, value, display: str | None = None) -> None:
        text = value if isinstance(value, str) else number_text(value)
        self.tokens.append(Operand(text, display or None))

    def push_operator(self, op: str) -> bool:
        """Append *op*, or swap an existing trailing operator for it.

        A leading operator is only accepted for subtraction (a negative sign).
        Returns ``False`` when the push was rejected.
        """
        operator = Operator(op)
        if not self.tokens:
            if op != "-":
                return False
            self.tokens.append(operator)
            return True
        if is_operator(self.tokens[-1]):
            if len(self.tokens) == 1 and op != "-":
                return False
            self.tokens[-1] = operator
        else:
            self.tokens.append(operator)
        return True

    def commit_current_entry(self) -> None:
        operand = self._entry_operand()
        if operand is None:
            return
        self.tokens.append(operand)
        self.current_entry = ""
        self.current_display = ""

    def finalize_measure(self) -> None:
        operand = self.measure.finalize()
        if operand is not None:
            self.tokens.append(operand)

    def apply_operator(self, op: str) -> bool:
        """Operator key: flatten any live term, then push *op*."""
        if op not in OPERATORS:
            raise ValueError(f"Unknown operator: {op!r}")
        self.finalize_measure()
        self.commit_current_entry()
        return self.push_operator(op)

    # ------------------------------------------------------------------
    # Keypad entry
    # ------------------------------------------------------------------

    def append_digit(self, ch: str) -> None:
        if self.measure.active:
            self.measure.append_digit(ch)
            return
        self.current_entry += ch
        self.current_display = ""

    def append_decimal_point(self) -> None:
        if self.measure.active:
            self.measure.append_decimal_point()
            return
        if "." in self.current_entry:
            return
        self.current_entry = self.current_entry + "." if self.current_entry else "0."
        self.current_display = ""

    def append_fraction(self, numerator: int, denominator: int) -> None:
        """Fraction key: combine with a whole entry, or start a fraction term."""
        frac = f"{numerator}/{denominator}"
        if self.measure.active:
            self.measure.append_fraction(numerator, denominator)
        elif not self.current_entry:
            self.current_entry = frac
            self.current_display = ""
        elif _WHOLE_RE.match(self.current_entry):
            whole = int(self.current_entry)
            self.push_operand(whole + numerator / denominator, f"{whole} {frac}")
            self.current_entry = ""
            self.current_display = ""
        else:
            self.commit_current_entry()
            self.tokens.append(Operator("+"))
            self.current_entry = frac
            self.current_display = ""

    def commit_feet(self) -> bool:
        """Feet key.  Returns ``True`` when the expression changed."""
        if self.measure.active:
            return False
        self.current_display = ""
        entry = self.current_entry

        # A fraction typed as feet: "1/2" FT → 6″
        if entry and is_typed_fraction(entry):
            feet = fraction_value(entry)
            if feet is not None:
                self.push_operand(feet * 12, f"{entry}{FOOT_MARK}")
                self.current_entry = ""
                return True

        # Reinterpret a committed "1 1/2" or "1/2" operand as feet
        if not entry:
            i = self._last_operand_index()
            if i < 0:
                return False
            last = self.tokens[i]
            disp = last.display
            looks_fraction = bool(disp) and (
                _MIXED_LABEL_RE.match(disp) or _FRAC_LABEL_RE.match(disp)
            )
            if looks_fraction and FOOT_MARK not in disp:
                try:
                    inches = float(last.value)
                except ValueError:
                    return False
                self.tokens[i] = Operand(number_text(inches * 12), disp + FOOT_MARK)
                return True
            return False

        if _DECIMAL_RE.match(entry):
            feet = float(entry)
            self.push_operand(feet * 12, f"{number_text(feet)}{FOOT_MARK}")
            self.current_entry = ""
            return True

        if _WHOLE_OR_DOT_RE.match(entry):
            self.measure.start_feet(int(entry.rstrip(".")))
            self.current_entry = ""
            return True

        try:
            feet = float(entry)
        except ValueError:
            return False
        if not math.isfinite(feet):
            return False
        self.push_operand(feet * 12, f"{number_text(feet)}{FOOT_MARK}")
        self.current_entry = ""
        return True

    def insert_value(self, value: float, replace_existing: bool = False,
                     display: str | None = None) -> bool:
        """Put *value* into the current entry (memory recall, tape commit).

        With *replace_existing*, an existing current entry or trailing operand
        is overwritten instead of committed.
        """
        if value is None or not math.isfinite(value):
            return False
        self.finalize_measure()
        text = number_text(value)
        disp = display or ""

        if replace_existing:
            if self.current_entry:
                self.current_entry = text
                self.current_display = disp
                return True
            if self.tokens and not is_operator(self.tokens[-1]):
                self.tokens[-1] = Operand(text, disp or None)
                return True

        if self.current_entry:
            self.commit_current_entry()
        self.current_entry = text
        self.current_display = disp
        return True

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def backspace_char(self) -> None:
        if self.measure.active:
            self.measure.backspace()
            return
        if self.current_entry and is_typed_fraction(self.current_entry):
            self.current_entry = ""
            self.current_display = ""
            return
        if self.current_entry:
            self.current_entry = self.current_entry[:-1]
            self.current_display = ""
            return
        if not self.tokens:
            return
        last = self.tokens[-1]
        if is_operator(last):
            self.tokens.pop()
            return
        value = last.value[:-1]
        if value not in ("", "-", "+", "."):
            self.tokens[-1] = Operand(value)
        else:
            self.tokens.pop()

    def _drop_trailing_operator(self) -> None:
        if self.trailing_operator is not None:
            self.tokens.pop()

    def remove_last_term_pair(self) -> None:
        """Long-press backspace: remove the last term and the operator before it.

        A live measure or entry counts as the last term and is discarded
        rather than committed.
        """
        if self.measure.active:
            self.measure.reset()
            self._drop_trailing_operator()
            return
        if self.current_entry:
            self.current_entry = ""
            self.current_display = ""
            self._drop_trailing_operator()
            return
        idx = self._last_operand_index()
        if idx < 0:
            return
        del self.tokens[idx]
        if idx - 1 >= 0 and is_operator(self.tokens[idx - 1]):
            del self.tokens[idx - 1]

    def clear(self) -> None:
        self.tokens = []
        self.current_entry = ""
        self.current_display = ""
        self.measure.reset()

    def replace_all(self, value_in_inches: float, display_mode: str = "inch") -> None:
        """Reset to a single operand holding *value_in_inches*."""
        self.clear()
        formatted = format_result(value_in_inches, display_mode)
        self.tokens.append(Operand(number_text(value_in_inches),
                                   strip_arrow(formatted.fraction)))

    # ------------------------------------------------------------------
    # Repeat
    # ------------------------------------------------------------------

    def can_repeat(self) -> bool:
        pending_op = self.trailing_operator is not None
        if self.measure.active:
            return pending_op and self.measure.has_content
        if self.current_entry:
            return pending_op
        n = len(self.tokens)
        return n >= 2 and is_operator(self.tokens[-2]) and not is_operator(self.tokens[-1])

    def repeat_last_operation(self) -> bool:
        """``5 + 3`` → ``5 + 3 + 3``.  Returns ``False`` when nothing repeatable."""
        if not self.can_repeat():
            return False
        if self.trailing_operator is not None:
            self.finalize_measure()
            self.commit_current_entry()
        n = len(self.tokens)
        if not (n >= 2 and is_operator(self.tokens[-2]) and not is_operator(self.tokens[-1])):
            return False
        op, term = self.tokens[-2], self.tokens[-1]
        self.tokens.extend([op, term])
        return True

    # ------------------------------------------------------------------
    # History rendering
    # ------------------------------------------------------------------

    def render_history_text(self) -> str:
        nodes: list[list] = []
        for tok in self.tokens:
            if is_operator(tok):
                nodes.append(["op", tok.kind])
            else:
                nodes.append(["num", tok.text])
        live = self.live_operand()
        if live is not None:
            nodes.append(["num", live.text])

        trailing = None
        if nodes and nodes[-1][0] == "op":
            trailing = nodes.pop()[1]

        # Leading unary minus is folded into the first operand
        if len(nodes) >= 2 and nodes[0] == ["op", "-"] and nodes[1][0] == "num":
            nodes.pop(0)
            nodes[0][1] = MINUS_SIGN + nodes[0][1]

        if not nodes:
            return pretty_op(trailing) if trailing else ""

        feet_present = any(kind == "num" and FOOT_MARK in text for kind, text in nodes)

        def mark_inches(text: str) -> str:
            if not feet_present or not text:
                return text
            if FOOT_MARK in text or INCH_MARK in text:
                return text
            return text + INCH_MARK

        ops = [text for kind, text in nodes if kind == "op"]
        mixed = (any(op in MULTIPLICATIVE for op in ops)
                 and any(op in ADDITIVE for op in ops))

        out = ""
        i = 0
        while i < len(nodes):
            kind, text = nodes[i]
            if kind == "op":
                out += f" {pretty_op(text)} "
                i += 1
                continue
            part = mark_inches(text)
            j = i
            grouped = False
            while (j + 2 < len(nodes)
                   and nodes[j + 1][0] == "op" and nodes[j + 1][1] in MULTIPLICATIVE
                   and nodes[j + 2][0] == "num"):
                part += f" {pretty_op(nodes[j + 1][1])} {mark_inches(nodes[j + 2][1])}"
                grouped = True
                j += 2
            if mixed and grouped:
                part = f"({part})"
            if out and not out.endswith(" "):
                out += " "
            out += part
            i = j + 1

        if trailing:
            out = f"{out} {pretty_op(trailing)}" if out else pretty_op(trailing)
        return out.strip()

    # ------------------------------------------------------------------
    # Snapshots (saved equations)
    # ------------------------------------------------------------------

    def snapshot(self) -> dict:
        """Token values and displays, including the live term if any."""
        seq = list(self.tokens)
        live = self.live_operand()
        if live is not None:
            seq.append(live)
        return {
            "tokens": [t.kind if is_operator(t) else t.value for t in seq],
            "displays": [None if is_operator(t) else t.display for t in seq],
        }

    def load(self, tokens: list, displays: list | None = None) -> None:
        """Rebuild the token sequence from a :meth:`snapshot`."""
        self.clear()
        displays = list(displays or [])
        for i, raw in enumerate(tokens):
            text = "" if raw is None else str(raw)
            if text in OPERATORS:
                self.tokens.append(Operator(text))
                continue
            display = displays[i] if i < len(displays) else None
            self.tokens.append(Operand(text, display if isinstance(display, str) else None))
