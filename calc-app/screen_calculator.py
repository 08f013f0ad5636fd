"""
Tape Calc - Calculator Screen

Feet / inch / fraction keypad with live results and the measuring tape.

Layout (480 × 320, content area 480 × 272 above the nav bar):

  LEFT PANEL  (x   6–238)  History line, result card (fraction + decimal),
                           tape strip, memory row M1–M5, 5 × 3 fraction grid
  RIGHT PANEL (x 244–474)  4 × 5 keypad

Long presses (timed in update()):
  DEL          remove the last term and its operator
  FT           show results in feet while held
  M1–M5        store the current value (asks before overwriting)
  result card  replace the expression with its result (asks first)

Construction modes:
  ScreenCalculator(surface)     test mode: plain Surface or MagicMock
  ScreenCalculator(ui_manager)  app mode: UIManager instance passed as 'surface'
"""

from __future__ import annotations

import logging

import pygame

import config
from session import CalculatorSession
from ui_manager import (
    ACCENT,
    BG_COLOR,
    CARD_BG,
    CONTENT_H,
    GREEN,
    NAV_BORDER,
    ORANGE,
    RED,
    TEXT_COLOR,
    TEXT_MUTED,
    YELLOW,
    ConfirmOverlay,
    draw_rounded_rect,
    draw_text,
    fit_text,
    fonts,
    press_shade,
)

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Layout constants
# ---------------------------------------------------------------------------

_GAP = 4

# Left panel
_LEFT_X = 6
_LEFT_W = 232

_HISTORY_RECT = pygame.Rect(_LEFT_X, 2, _LEFT_W, 20)
_RESULT_RECT  = pygame.Rect(_LEFT_X, 24, _LEFT_W, 58)
_TAPE_RECT    = pygame.Rect(_LEFT_X, 86, _LEFT_W, 44)

_MEM_Y = 134
_MEM_H = 26
_MEM_W = (_LEFT_W - 4 * _GAP) // 5

_FRAC_Y    = 164
_FRAC_COLS = 5
_FRAC_H    = (CONTENT_H - 4 - _FRAC_Y - 2 * _GAP) // 3
_FRAC_W    = (_LEFT_W - (_FRAC_COLS - 1) * _GAP) // _FRAC_COLS

# Right panel: keypad
_KP_LEFT  = 244
_KP_TOP   = 4
_KP_COLS  = 4
_KP_BTN_W = (480 - 6 - _KP_LEFT - (_KP_COLS - 1) * _GAP) // _KP_COLS
_KP_BTN_H = (CONTENT_H - 2 * _KP_TOP - 4 * _GAP) // 5

# ---------------------------------------------------------------------------
# Colours
# ---------------------------------------------------------------------------

_KP_DIGIT_BG = (30,  45,  75)
_KP_OP_BG    = (20,  70,  100)
_KP_DEL_BG   = (60,  30,  30)
_KP_CLR_BG   = (90,  30,  30)
_KP_FT_BG    = (80,  50,  20)
_KP_MISC_BG  = (40,  50,  70)
_FRAC_BG_A   = (26,  117, 255)   # odd sixteenths
_FRAC_BG_B   = (102, 163, 255)   # even sixteenths
_MEM_BG      = (35,  40,  60)
_MEM_FILLED  = (30,  70,  60)
_DISABLED_FG = (90,  100, 120)

# ---------------------------------------------------------------------------
# Keypad layout definition
# Row 0: 7 8 9 ÷
# Row 1: 4 5 6 ×
# Row 2: 1 2 3 −
# Row 3: 0 . FT +
# Row 4: C DEL RPT SAVE
# ---------------------------------------------------------------------------

_KEYPAD_LAYOUT = [
    ["7", "8", "9",  "/"],
    ["4", "5", "6",  "*"],
    ["1", "2", "3",  "-"],
    ["0", ".", "FT", "+"],
    ["C", "DEL", "RPT", "SAVE"],
]

_KEY_LABELS = {"/": "÷", "*": "×", "-": "−", "+": "+"}

# Per-button styling: (bg_color, text_color)
_KEYPAD_STYLE: dict[str, tuple] = {
    "/":    (_KP_OP_BG,   ACCENT),
    "*":    (_KP_OP_BG,   ACCENT),
    "-":    (_KP_OP_BG,   ACCENT),
    "+":    (_KP_OP_BG,   ACCENT),
    "FT":   (_KP_FT_BG,   ORANGE),
    "C":    (_KP_CLR_BG,  RED),
    "DEL":  (_KP_DEL_BG,  RED),
    "RPT":  (_KP_MISC_BG, TEXT_COLOR),
    "SAVE": (_KP_MISC_BG, GREEN),
}
_KEYPAD_DEFAULT_STYLE = (_KP_DIGIT_BG, TEXT_COLOR)

# Fraction grid, 1/16 through 15/16 in reduced form
_FRACTIONS = [
    (1, 16), (1, 8),  (3, 16),  (1, 4), (5, 16),
    (3, 8),  (7, 16), (1, 2),   (9, 16), (5, 8),
    (11, 16), (3, 4), (13, 16), (7, 8), (15, 16),
]

_HOLD_SECONDS = {
    "DEL":    config.BACKSPACE_HOLD_S,
    "FT":     config.FEET_HOLD_S,
    "mem":    config.MEMORY_HOLD_S,
    "result": config.RESULT_HOLD_S,
}


class _Press:
    """A held button waiting to become either a tap or a long press."""

    def __init__(self, kind: str, key) -> None:
        self.kind = kind        # 'key', 'mem' or 'result'
        self.key = key
        self.elapsed = 0.0
        self.fired = False

    @property
    def hold_name(self) -> str:
        return self.key if self.kind == "key" else self.kind


# ---------------------------------------------------------------------------
# ScreenCalculator
# ---------------------------------------------------------------------------

class ScreenCalculator:
    """The measuring calculator.

    Args:
        surface: pygame.Surface to render onto (480×320), OR a UIManager
                 instance (detected via ``hasattr(surface, '_surface')``).
        session: CalculatorSession to drive; a fresh in-memory one if omitted.
    """

    def __init__(self, surface, session: CalculatorSession | None = None) -> None:
        if hasattr(surface, "_surface"):
            self._ui      = surface
            self._surface = surface._surface
        else:
            self._ui      = None
            self._surface = surface

        self.session = session if session is not None else CalculatorSession()
        self.confirm = ConfirmOverlay()
        self.session.tape.set_width(_TAPE_RECT.width)

        # Hit-rects rebuilt by _layout(): list of (kind, key, rect)
        self._targets: list[tuple[str, object, pygame.Rect]] = []
        self._layout()

        self._pressed_key: str | None = None
        self._press: _Press | None = None
        self._tape_active = False

        if not pygame.font.get_init():
            pygame.font.init()

    def _layout(self) -> None:
        targets = []
        for row_idx, row in enumerate(_KEYPAD_LAYOUT):
            for col_idx, key in enumerate(row):
                x = _KP_LEFT + col_idx * (_KP_BTN_W + _GAP)
                y = _KP_TOP + row_idx * (_KP_BTN_H + _GAP)
                targets.append(("key", key, pygame.Rect(x, y, _KP_BTN_W, _KP_BTN_H)))
        for i, frac in enumerate(_FRACTIONS):
            row, col = divmod(i, _FRAC_COLS)
            x = _LEFT_X + col * (_FRAC_W + _GAP)
            y = _FRAC_Y + row * (_FRAC_H + _GAP)
            targets.append(("frac", frac, pygame.Rect(x, y, _FRAC_W, _FRAC_H)))
        for i in range(len(self.session.memory)):
            x = _LEFT_X + i * (_MEM_W + _GAP)
            targets.append(("mem", i, pygame.Rect(x, _MEM_Y, _MEM_W, _MEM_H)))
        targets.append(("result", None, _RESULT_RECT))
        self._targets = targets

    def rect_for(self, kind: str, key=None) -> pygame.Rect | None:
        for k, name, rect in self._targets:
            if k == kind and name == key:
                return rect
        if kind == "tape":
            return _TAPE_RECT
        return None

    # ------------------------------------------------------------------
    # Screen interface: update / draw / event handling
    # ------------------------------------------------------------------

    def update(self, dt: float) -> None:
        """Advance long-press timers and the session's debounce / fling."""
        press = self._press
        if press is not None and not press.fired:
            threshold = _HOLD_SECONDS.get(press.hold_name)
            if threshold is not None:
                press.elapsed += dt
                if press.elapsed >= threshold:
                    press.fired = True
                    self._long_press(press)
        self.session.tick()

    def draw(self, surface: pygame.Surface | None = None) -> None:
        """Render the full calculator UI."""
        target = surface if surface is not None else self._surface

        # Always fill first; works on both real surfaces and MagicMocks.
        target.fill(BG_COLOR)

        try:
            fnt = fonts()
            self._draw_left_panel(target, fnt)
            self._draw_right_panel(target, fnt)
            self.confirm.draw(target, fnt)
        except Exception:
            # pygame.draw.* calls fail on MagicMock surfaces in tests.
            pass

    def handle_event(self, event) -> None:
        """Keyboard input: digits, ``.``, operators, Backspace, ``f`` for feet, Delete clears."""
        if event.type != pygame.KEYDOWN:
            return
        if self.confirm.is_open:
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
                self.confirm.accept()
            else:
                self.confirm.close()
            return

        if event.key == pygame.K_BACKSPACE:
            self.session.backspace()
            return
        if event.key == pygame.K_DELETE:
            self.session.clear()
            return

        ch = event.unicode
        if ch and ch.isdigit():
            self.session.press_digit(ch)
        elif ch == ".":
            self.session.press_decimal()
        elif ch in ("+", "-", "*", "/"):
            self.session.press_operator(ch)
        elif ch in ("f", "F", "'"):
            self.session.press_feet()

    def handle_touch(self, x: int, y: int) -> None:
        """Pointer down at (*x*, *y*)."""
        if self.confirm.handle_touch(x, y):
            return
        if _TAPE_RECT.collidepoint(x, y):
            self._tape_active = True
            self.session.tape.pointer_down(x - _TAPE_RECT.left, self.session.clock())
            return

        for kind, key, rect in self._targets:
            if rect.collidepoint(x, y):
                self._pressed_key = f"{kind}:{key}"
                if (kind == "key" and key in _HOLD_SECONDS) or kind in ("mem", "result"):
                    self._press = _Press(kind, key)
                else:
                    self._tap(kind, key)
                return
        self._pressed_key = None

    def handle_drag(self, x: int, y: int) -> None:
        if self._tape_active:
            self.session.tape.pointer_move(x - _TAPE_RECT.left, self.session.clock())

    def handle_release(self, x: int, y: int) -> None:
        self._pressed_key = None
        if self._tape_active:
            self._tape_active = False
            self.session.tape.pointer_up(self.session.clock())
            return
        press, self._press = self._press, None
        if press is None:
            return
        if press.fired:
            if press.hold_name == "FT":
                self.session.end_feet_peek()
            return
        self._tap(press.kind, press.key)

    def handle_cancel(self) -> None:
        """Focus lost mid-press: finish the tape gesture, drop any hold."""
        self._pressed_key = None
        if self._tape_active:
            self._tape_active = False
            self.session.tape.pointer_cancel(self.session.clock())
        press, self._press = self._press, None
        if press is not None and press.fired and press.hold_name == "FT":
            self.session.end_feet_peek()

    # ------------------------------------------------------------------
    # Private: action dispatch
    # ------------------------------------------------------------------

    def _tap(self, kind: str, key) -> None:
        session = self.session
        if kind == "frac":
            session.press_fraction(*key)
        elif kind == "mem":
            session.recall_memory(key)
        elif kind == "result":
            pass
        elif key.isdigit():
            session.press_digit(key)
        elif key == ".":
            session.press_decimal()
        elif key in ("+", "-", "*", "/"):
            session.press_operator(key)
        elif key == "FT":
            session.press_feet()
        elif key == "DEL":
            session.backspace()
        elif key == "C":
            session.clear()
        elif key == "RPT":
            session.repeat()
        elif key == "SAVE":
            session.save_equation()

    def _long_press(self, press: _Press) -> None:
        session = self.session
        name = press.hold_name
        log.debug("long press on %s", name)
        if name == "DEL":
            session.backspace_hold()
        elif name == "FT":
            session.start_feet_peek()
        elif name == "mem":
            index = press.key
            prompt = session.memory_prompt(index)
            if prompt is None:
                session.store_memory(index)
            else:
                self.confirm.open(prompt, lambda: session.store_memory(index))
        elif name == "result":
            prompt = session.replace_prompt()
            if prompt is not None:
                self.confirm.open(prompt, session.replace_with_result)

    # ------------------------------------------------------------------
    # Private: left panel drawing
    # ------------------------------------------------------------------

    def _draw_left_panel(self, surface: pygame.Surface, fnt: dict) -> None:
        session = self.session
        lines = session.renderer.lines

        # ---- History line / notice -------------------------------------
        if session.notice:
            draw_text(surface, session.notice, fnt["small"], YELLOW,
                      _HISTORY_RECT.centerx, _HISTORY_RECT.centery, anchor="center")
        else:
            history = fit_text(lines.history_text, fnt["body"], _HISTORY_RECT.width - 8)
            draw_text(surface, history, fnt["body"], TEXT_MUTED,
                      _HISTORY_RECT.right - 4, _HISTORY_RECT.centery, anchor="midright")

        # ---- Result card -----------------------------------------------
        held = self._press is not None and self._press.kind == "result"
        draw_rounded_rect(surface, press_shade(CARD_BG, 1.4) if held else CARD_BG,
                          _RESULT_RECT, radius=8)
        pygame.draw.line(surface, ORANGE if session.feet_peek_active else ACCENT,
                         (_RESULT_RECT.left + 4, _RESULT_RECT.top + 1),
                         (_RESULT_RECT.right - 5, _RESULT_RECT.top + 1), 2)

        right = _RESULT_RECT.right - 10
        if lines.fraction_body:
            body_rect = draw_text(surface, f"{lines.sign}{lines.fraction_body}",
                                  fnt["result"], TEXT_COLOR,
                                  right, _RESULT_RECT.top + 4, anchor="topright")
            if lines.arrow:
                draw_text(surface, lines.arrow, fnt["heading"], YELLOW,
                          body_rect.left - 6, body_rect.centery, anchor="midright")
        else:
            draw_text(surface, "—", fnt["result"], TEXT_MUTED,
                      _RESULT_RECT.centerx, _RESULT_RECT.top + 4, anchor="midtop")
        if lines.decimal_text:
            draw_text(surface, lines.decimal_text, fnt["body"], GREEN,
                      right, _RESULT_RECT.bottom - 4, anchor="bottomright")

        # ---- Tape ------------------------------------------------------
        session.tape.draw(surface, _TAPE_RECT, fnt)

        # ---- Memory row and fractions ----------------------------------
        for kind, key, rect in self._targets:
            if kind == "mem":
                filled = session.memory.get(key) is not None
                bg = _MEM_FILLED if filled else _MEM_BG
                if self._press is not None and self._press.kind == "mem" and self._press.key == key:
                    bg = press_shade(bg)
                draw_rounded_rect(surface, bg, rect, radius=6)
                label = fit_text(session.memory_label(key), fnt["small"], rect.width - 4)
                draw_text(surface, label, fnt["small"], TEXT_COLOR if filled else TEXT_MUTED,
                          rect.centerx, rect.centery, anchor="center")
            elif kind == "frac":
                n, d = key
                bg = _FRAC_BG_A if d == 16 else _FRAC_BG_B
                if self._pressed_key == f"frac:{key}":
                    bg = press_shade(bg)
                draw_rounded_rect(surface, bg, rect, radius=6)
                draw_text(surface, f"{n}/{d}", fnt["body"], TEXT_COLOR,
                          rect.centerx, rect.centery, anchor="center")

    # ------------------------------------------------------------------
    # Private: right panel drawing
    # ------------------------------------------------------------------

    def _draw_right_panel(self, surface: pygame.Surface, fnt: dict) -> None:
        """Draw the 4 × 5 keypad."""
        can_repeat = self.session.can_repeat
        for kind, key, rect in self._targets:
            if kind != "key":
                continue
            bg_col, fg_col = _KEYPAD_STYLE.get(key, _KEYPAD_DEFAULT_STYLE)
            if key == "RPT" and not can_repeat:
                fg_col = _DISABLED_FG
            if self._pressed_key == f"key:{key}":
                bg_col = press_shade(bg_col)
            if key == "FT" and self.session.feet_peek_active:
                bg_col = ORANGE
                fg_col = BG_COLOR

            draw_rounded_rect(surface, bg_col, rect, radius=6)
            font = fnt["key"] if len(key) == 1 else fnt["body"]
            draw_text(surface, _KEY_LABELS.get(key, key), font, fg_col,
                      rect.centerx, rect.centery, anchor="center")
        pygame.draw.line(surface, NAV_BORDER, (_KP_LEFT - 4, 4), (_KP_LEFT - 4, CONTENT_H - 4), 1)

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def on_enter(self) -> None:
        """Called when this screen becomes active."""
        self.session.tape.refresh()

    def on_exit(self) -> None:
        """Called when this screen is deactivated."""
        self.handle_cancel()
        self.confirm.close()


# ---------------------------------------------------------------------------
# Standalone preview
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import sys

    pygame.init()
    window = pygame.display.set_mode((480, 320))
    pygame.display.set_caption("Calculator - preview")
    clock = pygame.time.Clock()

    calc = ScreenCalculator(window)
    mouse_down = False

    running = True
    while running:
        dt = clock.tick(60) / 1000.0
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                mouse_down = True
                calc.handle_touch(*event.pos)
            elif event.type == pygame.MOUSEMOTION and mouse_down:
                calc.handle_drag(*event.pos)
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                mouse_down = False
                calc.handle_release(*event.pos)
            calc.handle_event(event)
        calc.update(dt)
        calc.draw(window)
        pygame.display.flip()

    pygame.quit()
    sys.exit()
