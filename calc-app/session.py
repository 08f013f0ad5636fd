"""
Tape Calc - Calculator Session

One CalculatorSession owns every piece of mutable calculator state: the
expression, the last good result, the display mode, the tape state, memory
slots and saved equations.  Screens call its ``press_*`` handlers and poll
:meth:`tick` once per frame; they never touch the parts directly.

Evaluation timing follows the keypad:

  digits, decimal point, fractions, feet   debounced (EVAL_DEBOUNCE_S)
  operators, backspace, repeat, memory,
  tape commits, saved-equation loads       immediate

Actions that need a confirmation (overwriting a memory slot, deleting a
saved equation, replacing the expression with its result) are split into a
``*_prompt`` query and the action itself so the UI can ask first.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable

import config
from evaluator import EvaluationError, Evaluator, LastGood, evaluate_terms
from expression import Expression
from result_renderer import ResultRenderer
from storage import KeyValueStore, MemorySlots, SavedEquations, parse_saved_value
from tape import MODE_RESULT, TapeState, TapeWidget
from token_types import is_operator
from unit_format import format_label, number_text

log = logging.getLogger(__name__)

_DIGITS = "0123456789"


class CalculatorSession:
    """Process-wide calculator state and the input handlers that mutate it.

    Args:
        store:      Key-value store for memory slots and saved equations.
                    ``None`` uses an in-memory store.
        clock:      Monotonic time source shared by the debounce and fling.
        debounce_s: Evaluation settle delay.
        tape_width: Initial tape width in pixels (the screen updates it).
    """

    def __init__(self, store: KeyValueStore | None = None,
                 clock: Callable[[], float] = time.monotonic,
                 debounce_s: float = config.EVAL_DEBOUNCE_S,
                 tape_width: float = 224) -> None:
        self.clock = clock
        self.store = store if store is not None else KeyValueStore(None)

        self.expression = Expression()
        self.last_good = LastGood()
        self.display_mode = "inch"
        self.tape_state = TapeState()

        self.renderer = ResultRenderer()
        self.evaluator = Evaluator(self, debounce_s, clock)
        self.tape = TapeWidget(self, tape_width, clock)
        self.renderer.add_center_listener(self.tape.refresh)

        self.memory = MemorySlots(self.store)
        self.saved = SavedEquations(self.store)

        self.notice = ""
        self._notice_until = 0.0
        self._feet_peek = False

    # ------------------------------------------------------------------
    # Frame hook
    # ------------------------------------------------------------------

    def tick(self, now: float | None = None) -> None:
        """Fire a due evaluation, advance the fling, expire the notice."""
        if now is None:
            now = self.clock()
        self.evaluator.poll(now)
        self.tape.step(now)
        if self.notice and now >= self._notice_until:
            self.notice = ""

    def _notify(self, text: str) -> None:
        log.info(text)
        self.notice = text
        self._notice_until = self.clock() + config.NOTICE_S

    def _edited(self, immediate: bool = False) -> None:
        self.renderer.show_history(self.expression.render_history_text())
        if immediate:
            self.evaluator.recompute()
        else:
            self.evaluator.schedule()

    def _result_mode(self) -> None:
        self.tape.set_mode(MODE_RESULT)

    # ------------------------------------------------------------------
    # Keypad
    # ------------------------------------------------------------------

    def press_digit(self, ch: str) -> None:
        if len(ch) != 1 or ch not in _DIGITS:
            raise ValueError(f"Not a digit: {ch!r}")
        self._result_mode()
        self.expression.append_digit(ch)
        self._edited()

    def press_decimal(self) -> None:
        self._result_mode()
        self.expression.append_decimal_point()
        self._edited()

    def press_fraction(self, numerator: int, denominator: int) -> None:
        if denominator <= 0 or numerator < 0:
            raise ValueError(f"Bad fraction key {numerator}/{denominator}")
        self._result_mode()
        self.expression.append_fraction(numerator, denominator)
        self._edited()

    def press_operator(self, op: str) -> None:
        self._result_mode()
        self.expression.apply_operator(op)
        self._edited(immediate=True)

    def press_feet(self) -> None:
        self._result_mode()
        if self.expression.commit_feet():
            self._edited()

    def backspace(self) -> None:
        self._result_mode()
        self.expression.backspace_char()
        self._edited(immediate=True)

    def backspace_hold(self) -> None:
        self._result_mode()
        self.expression.remove_last_term_pair()
        self._edited(immediate=True)

    @property
    def can_repeat(self) -> bool:
        return self.expression.can_repeat()

    def repeat(self) -> bool:
        self._result_mode()
        if not self.expression.repeat_last_operation():
            return False
        self._edited(immediate=True)
        return True

    def clear(self) -> None:
        self._result_mode()
        self.evaluator.cancel()
        self.expression.clear()
        self.renderer.show_history("")
        self.renderer.clear()
        self.last_good = LastGood()
        self.tape_state.entry_center = 0.0
        self.tape_state.entry_touched = True
        self.tape.refresh(0.0)

    # ------------------------------------------------------------------
    # Feet peek and replace-with-result
    # ------------------------------------------------------------------

    @property
    def feet_peek_active(self) -> bool:
        return self._feet_peek

    def start_feet_peek(self) -> None:
        if self._feet_peek:
            return
        self._feet_peek = True
        self.display_mode = "feet"
        self.evaluator.recompute()

    def end_feet_peek(self) -> None:
        if not self._feet_peek:
            return
        self._feet_peek = False
        self.display_mode = "inch"
        self.evaluator.recompute()

    def replace_prompt(self) -> str | None:
        if self.expression.is_empty or not self.last_good.decimal:
            return None
        return f"Replace the expression with {self.last_good.fraction}?"

    def replace_with_result(self) -> None:
        value = self.last_good.value
        if not math.isfinite(value):
            return
        self._result_mode()
        self.expression.replace_all(value, self.display_mode)
        self._edited(immediate=True)

    # ------------------------------------------------------------------
    # Tape
    # ------------------------------------------------------------------

    def commit_tape_value(self, value: float) -> None:
        """Replace the current entry (or trailing operand) with a tape value."""
        if self.expression.insert_value(value, replace_existing=True,
                                        display=format_label(value)):
            self._edited(immediate=True)

    # ------------------------------------------------------------------
    # Memory slots
    # ------------------------------------------------------------------

    def current_value(self) -> float | None:
        """Committed terms plus entry (trailing operators dropped) plus the live measure."""
        expr = self.expression
        terms = list(expr.tokens)
        if not expr.measure.active:
            live = expr.live_operand()
            if live is not None:
                terms.append(live)
        while terms and is_operator(terms[-1]):
            terms.pop()
        try:
            base = evaluate_terms(terms)
        except EvaluationError as exc:
            log.debug("no storable value (%s)", exc)
            return None
        if expr.measure.active:
            base += expr.measure.total()
        return base

    def memory_label(self, index: int) -> str:
        return self.memory.label(index)

    def memory_prompt(self, index: int) -> str | None:
        """Confirmation text for storing into a filled slot, else ``None``."""
        if self.memory.get(index) is None:
            return None
        return f"Overwrite M{index + 1} ({self.memory.label(index)}) with the current value?"

    def store_memory(self, index: int) -> bool:
        value = self.current_value()
        if value is None:
            self._notify("Nothing to store")
            return False
        self.memory.put(index, value)
        self._notify(f"M{index + 1} = {format_label(value)}")
        return True

    def recall_memory(self, index: int) -> bool:
        """Insert a filled slot's value; an empty slot stores the current value."""
        self._result_mode()
        self.expression.current_display = ""
        value = self.memory.get(index)
        if value is None:
            return self.store_memory(index)
        if self.expression.insert_value(value):
            self._edited(immediate=True)
        return True

    # ------------------------------------------------------------------
    # Saved equations
    # ------------------------------------------------------------------

    def save_equation(self) -> dict | None:
        if self.evaluator.pending:
            self.evaluator.recompute()
        lines = self.renderer.lines
        expr = lines.history_text.strip()
        frac = lines.fraction_text.strip()
        if not expr:
            self._notify("Nothing to save")
            return None
        if self.saved.contains(expr, frac):
            self._notify("This equation is already saved.")
            return None
        snap = self.expression.snapshot()
        value = self.last_good.value if lines.decimal_text else None
        item = self.saved.add(expr, frac, lines.decimal_text, snap["tokens"],
                              snap["displays"], value)
        if item is not None:
            self._notify("Equation saved.")
        return item

    def load_equation(self, item_id: str) -> bool:
        item = self.saved.find(item_id)
        if item is None:
            return False
        value = parse_saved_value(item)
        if value is None:
            value = self.last_good.value if math.isfinite(self.last_good.value) else 0.0
        frac = item.get("frac") or ""
        dec = item.get("dec") or ""

        self._result_mode()
        self.evaluator.cancel()
        tokens = item.get("tokens")
        displays = item.get("displays")
        if isinstance(tokens, list) and tokens:
            self.expression.load(tokens, displays if isinstance(displays, list) else [])
        else:
            text = number_text(value)
            self.expression.load([text], [item.get("expr") or text])

        self.renderer.show_history(self.expression.render_history_text())
        self.renderer.render_outputs(frac, dec)
        self.last_good = LastGood(value, frac, dec)
        self.tape.refresh(value)
        self._notify("Equation loaded")
        return True

    def delete_equation(self, item_id: str) -> bool:
        if not self.saved.delete(item_id):
            return False
        self._notify("Saved equation deleted")
        return True

    def clear_equations(self) -> None:
        if not len(self.saved):
            return
        self.saved.clear()
        self._notify("Saved equations cleared")

    def rename_equation(self, item_id: str, label: str | None) -> bool:
        return self.saved.rename(item_id, label)
