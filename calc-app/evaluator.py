"""
Tape Calc - Expression Evaluator

Two layers:

  1. A narrow four-operator evaluator.  The token sequence is parsed into a
     tagged AST (Number | BinaryOp) with × ÷ binding tighter than + −, all
     left-associative.  A leading minus is read as ``0 - x``.

  2. The Evaluator, which builds a *preview* from the live Expression
     (committed tokens, plus any pending operator and uncommitted entry),
     evaluates it, and pushes the formatted result to the Result Renderer.
     Any failure falls back to the Measure Builder total or the last good
     result, so the result lines never go blank mid-entry.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Sequence, Union

import config
from expression import Expression, fraction_value, is_typed_fraction
from scheduler import DebouncedCall
from token_types import ADDITIVE, MULTIPLICATIVE, Operator, Token, is_operator
from unit_format import Formatted, format_result

log = logging.getLogger(__name__)


class EvaluationError(ValueError):
    """The preview cannot be evaluated right now."""


# ---------------------------------------------------------------------------
# AST
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Number:
    value: float

    def evaluate(self) -> float:
        return self.value


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"

    def evaluate(self) -> float:
        a = self.left.evaluate()
        b = self.right.evaluate()
        if self.op == "+":
            result = a + b
        elif self.op == "-":
            result = a - b
        elif self.op == "*":
            result = a * b
        elif self.op == "/":
            if b == 0:
                raise EvaluationError("division by zero")
            result = a / b
        else:
            raise EvaluationError(f"unknown operator {self.op!r}")
        if not math.isfinite(result):
            raise EvaluationError("result is not finite")
        return result


Node = Union[Number, BinaryOp]


def operand_number(text: str) -> float:
    """Numeric value of an operand's canonical text (``'2.5'``, ``'3/8'``)."""
    if is_typed_fraction(text):
        value = fraction_value(text)
        if value is None:
            raise EvaluationError(f"bad fraction {text!r}")
        return value
    try:
        value = float(text)
    except ValueError:
        raise EvaluationError(f"not a number: {text!r}") from None
    if not math.isfinite(value):
        raise EvaluationError(f"not a finite number: {text!r}")
    return value


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, terms: Sequence[Token]) -> None:
        self._terms = list(terms)
        self._pos = 0

    def parse(self) -> Node:
        if not self._terms:
            raise EvaluationError("empty expression")
        node = self._additive()
        if self._pos != len(self._terms):
            raise EvaluationError(f"unexpected token at {self._pos}")
        return node

    def _peek_op(self, kinds: tuple) -> str | None:
        if self._pos < len(self._terms):
            tok = self._terms[self._pos]
            if is_operator(tok) and tok.kind in kinds:
                return tok.kind
        return None

    def _additive(self) -> Node:
        node = self._multiplicative()
        op = self._peek_op(ADDITIVE)
        while op is not None:
            self._pos += 1
            node = BinaryOp(op, node, self._multiplicative())
            op = self._peek_op(ADDITIVE)
        return node

    def _multiplicative(self) -> Node:
        node = self._factor()
        op = self._peek_op(MULTIPLICATIVE)
        while op is not None:
            self._pos += 1
            node = BinaryOp(op, node, self._factor())
            op = self._peek_op(MULTIPLICATIVE)
        return node

    def _factor(self) -> Node:
        if self._pos >= len(self._terms):
            raise EvaluationError("missing operand")
        tok = self._terms[self._pos]
        self._pos += 1
        if is_operator(tok):
            if tok.kind == "-":
                return BinaryOp("-", Number(0.0), self._factor())
            raise EvaluationError(f"dangling operator {tok.kind!r}")
        return Number(operand_number(tok.value))


def parse_terms(terms: Sequence[Token]) -> Node:
    return _Parser(terms).parse()


def evaluate_terms(terms: Sequence[Token]) -> float:
    """Evaluate a token sequence.  An empty sequence evaluates to 0.

    Raises:
        EvaluationError: On any parse or arithmetic failure.
    """
    if not terms:
        return 0.0
    return parse_terms(terms).evaluate()


def build_preview(expr: Expression) -> list[Token]:
    """Token list for the live result, including uncommitted input.

    A live feet/inch measure with no pending operator binds to the preceding
    terms by addition.
    """
    terms = list(expr.tokens)
    pending = terms.pop() if terms and is_operator(terms[-1]) else None
    live = expr.live_operand()

    if pending is not None and live is not None:
        return terms + [pending, live]
    if live is not None and expr.measure.active:
        return terms + [Operator("+"), live] if terms else [live]
    if live is not None:
        return terms + [live]
    return terms


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

@dataclass
class LastGood:
    value: float = 0.0
    fraction: str = ""
    decimal: str = ""


class Evaluator:
    """Recomputes the session's result, directly or after a settle delay.

    Args:
        session:    The owning :class:`session.CalculatorSession`.
        debounce_s: Settle delay for :meth:`schedule`.
        clock:      Monotonic time source.
    """

    def __init__(self, session, debounce_s: float = config.EVAL_DEBOUNCE_S,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self._session = session
        self._deferred = DebouncedCall(self.recompute, debounce_s, clock)

    @property
    def pending(self) -> bool:
        return self._deferred.pending

    def schedule(self) -> None:
        """Recompute once input settles; a new call pushes the deadline back."""
        self._deferred.schedule()

    def poll(self, now: float | None = None) -> bool:
        return self._deferred.poll(now)

    def cancel(self) -> None:
        self._deferred.cancel()

    def recompute(self) -> float | None:
        """Evaluate now.  Returns the value, or ``None`` if a fallback was shown."""
        self._deferred.cancel()
        session = self._session
        expr = session.expression
        terms = build_preview(expr)

        try:
            value = evaluate_terms(terms)
        except EvaluationError as exc:
            log.debug("preview not evaluable (%s); showing fallback", exc)
            self._show_fallback()
            return None

        out = format_result(value, session.display_mode)
        session.last_good = LastGood(value, out.fraction, out.decimal)
        session.renderer.show_result(value, out)
        return value

    def _show_fallback(self) -> None:
        session = self._session
        expr = session.expression
        committed = expr.tokens[:-1] if expr.trailing_operator is not None else expr.tokens

        if expr.measure.active and not committed:
            total = expr.measure.total()
            session.renderer.show_result(total, format_result(total, session.display_mode))
            return

        last = session.last_good
        if last.decimal:
            session.renderer.show_result(last.value, Formatted(last.fraction, last.decimal))
        else:
            session.renderer.clear()
