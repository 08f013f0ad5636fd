"""
Tape Calc - Saved Equations Screen

Scrollable list of equation snapshots, newest first.

Layout (480 × 272 content area):

  HEADER (y 0–36)    "N saved" counter and a Clear-all button
  LIST   (y 40–268)  one 52 px row per equation:
                       title (label or date)          [Load] [Del]
                       expr = frac

Touch:
  Load       restore the equation and switch to the calculator
  Del        delete after confirmation
  Clear all  delete everything after confirmation
  hold title rename with the keyboard (Enter keeps, blank resets to the date)
  drag       scroll the list
"""

from __future__ import annotations

import logging
import time

import pygame

import config
from session import CalculatorSession
from storage import canonical_display
from ui_manager import (
    ACCENT,
    BG_COLOR,
    CARD_BG,
    CONTENT_H,
    GREEN,
    RED,
    SCREEN_W,
    TEXT_COLOR,
    TEXT_MUTED,
    YELLOW,
    ConfirmOverlay,
    draw_rounded_rect,
    draw_text,
    fit_text,
    fonts,
)

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Layout constants
# ---------------------------------------------------------------------------

_HEADER_H   = 36
_LIST_TOP   = 40
_LIST_RECT  = pygame.Rect(6, _LIST_TOP, SCREEN_W - 12, CONTENT_H - _LIST_TOP - 4)
_ROW_H      = 52
_ROW_GAP    = 4
_BTN_W      = 56
_BTN_H      = 32
_CLEAR_RECT = pygame.Rect(SCREEN_W - 116, 4, 110, 28)

_RENAME_HOLD_S   = config.RESULT_HOLD_S
_SCROLL_START_PX = 6

_LOAD_BG = (20, 70, 100)
_DEL_BG  = (60, 30, 30)


def format_timestamp(ts) -> str:
    """``ts`` in epoch milliseconds → ``'Oct 19 14:05'``."""
    try:
        return time.strftime("%b %d %H:%M", time.localtime(float(ts) / 1000))
    except (TypeError, ValueError, OverflowError, OSError):
        return ""


class ScreenSaved:
    """Saved-equation list.

    Args:
        surface:   pygame.Surface or UIManager (same duck-typing as the calculator).
        session:   The shared CalculatorSession.
        on_loaded: Called after a successful load (the app switches screens).
    """

    def __init__(self, surface, session: CalculatorSession | None = None,
                 on_loaded=None) -> None:
        if hasattr(surface, "_surface"):
            self._ui      = surface
            self._surface = surface._surface
        else:
            self._ui      = None
            self._surface = surface

        self.session = session if session is not None else CalculatorSession()
        self.confirm = ConfirmOverlay()
        self._on_loaded = on_loaded

        self.scroll = 0
        self._drag_start: tuple[int, int] | None = None
        self._scrolling = False
        self._scroll_origin = 0
        self._hold: tuple[str, float] | None = None     # (item id, seconds held)
        self._pending_tap: tuple[int, int] | None = None

        # Rename-in-progress
        self.renaming: str | None = None
        self.rename_text = ""

        if not pygame.font.get_init():
            pygame.font.init()

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def items(self) -> list[dict]:
        return self.session.saved.items

    def _max_scroll(self) -> int:
        content = len(self.items) * (_ROW_H + _ROW_GAP)
        return max(0, content - _LIST_RECT.height)

    def row_rect(self, index: int) -> pygame.Rect:
        y = _LIST_RECT.top + index * (_ROW_H + _ROW_GAP) - self.scroll
        return pygame.Rect(_LIST_RECT.left, y, _LIST_RECT.width, _ROW_H)

    def load_rect(self, index: int) -> pygame.Rect:
        row = self.row_rect(index)
        return pygame.Rect(row.right - 2 * _BTN_W - 10, row.centery - _BTN_H // 2, _BTN_W, _BTN_H)

    def delete_rect(self, index: int) -> pygame.Rect:
        row = self.row_rect(index)
        return pygame.Rect(row.right - _BTN_W - 4, row.centery - _BTN_H // 2, _BTN_W, _BTN_H)

    def _row_at(self, x: int, y: int) -> int | None:
        if not _LIST_RECT.collidepoint(x, y):
            return None
        for i in range(len(self.items)):
            if self.row_rect(i).collidepoint(x, y):
                return i
        return None

    # ------------------------------------------------------------------
    # Screen interface
    # ------------------------------------------------------------------

    def update(self, dt: float) -> None:
        if self._hold is not None and not self._scrolling:
            item_id, held = self._hold
            held += dt
            if held >= _RENAME_HOLD_S:
                self._hold = None
                self._pending_tap = None
                self.start_rename(item_id)
            else:
                self._hold = (item_id, held)
        self.session.tick()

    def draw(self, surface: pygame.Surface | None = None) -> None:
        target = surface if surface is not None else self._surface
        target.fill(BG_COLOR)
        try:
            fnt = fonts()
            self._draw_header(target, fnt)
            self._draw_list(target, fnt)
            self.confirm.draw(target, fnt)
        except Exception:
            # pygame.draw.* calls fail on MagicMock surfaces in tests.
            pass

    def handle_event(self, event) -> None:
        """Keyboard input is only used while renaming."""
        if event.type != pygame.KEYDOWN or self.renaming is None:
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self.finish_rename()
        elif event.key == pygame.K_BACKSPACE:
            self.rename_text = self.rename_text[:-1]
        elif event.unicode and event.unicode.isprintable() and len(self.rename_text) < 40:
            self.rename_text += event.unicode

    def handle_touch(self, x: int, y: int) -> None:
        if self.confirm.handle_touch(x, y):
            return
        if self.renaming is not None:
            self.finish_rename()
        if _CLEAR_RECT.collidepoint(x, y):
            if self.items:
                self.confirm.open("Clear all saved equations?", self.session.clear_equations)
            return

        self._drag_start = (x, y)
        self._scrolling = False
        self._pending_tap = (x, y)
        index = self._row_at(x, y)
        on_button = index is not None and (self.load_rect(index).collidepoint(x, y)
                                           or self.delete_rect(index).collidepoint(x, y))
        if index is not None and not on_button:
            self._hold = (self.items[index].get("id"), 0.0)

    def handle_drag(self, x: int, y: int) -> None:
        if self._drag_start is None:
            return
        dy = y - self._drag_start[1]
        if not self._scrolling and abs(dy) < _SCROLL_START_PX:
            return
        if not self._scrolling:
            self._scrolling = True
            self._hold = None
            self._pending_tap = None
            self._scroll_origin = self.scroll
        self.scroll = max(0, min(self._max_scroll(), self._scroll_origin - dy))

    def handle_release(self, x: int, y: int) -> None:
        tap = self._pending_tap
        self._drag_start = None
        self._scrolling = False
        self._hold = None
        self._pending_tap = None
        if tap is not None:
            self._tap(*tap)

    def handle_cancel(self) -> None:
        self._drag_start = None
        self._scrolling = False
        self._hold = None
        self._pending_tap = None

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _tap(self, x: int, y: int) -> None:
        index = self._row_at(x, y)
        if index is None:
            return
        item_id = self.items[index].get("id")
        if self.load_rect(index).collidepoint(x, y):
            if self.session.load_equation(item_id) and self._on_loaded is not None:
                self._on_loaded()
        elif self.delete_rect(index).collidepoint(x, y):
            self.confirm.open("Delete this saved equation?",
                              lambda: self._delete(item_id))

    def _delete(self, item_id: str) -> None:
        self.session.delete_equation(item_id)
        self.scroll = min(self.scroll, self._max_scroll())

    def start_rename(self, item_id: str) -> None:
        item = self.session.saved.find(item_id)
        if item is None:
            return
        self.renaming = item_id
        self.rename_text = item.get("label", "")

    def finish_rename(self) -> None:
        if self.renaming is not None:
            self.session.rename_equation(self.renaming, self.rename_text)
        self.renaming = None
        self.rename_text = ""

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def _draw_header(self, surface: pygame.Surface, fnt: dict) -> None:
        count = len(self.items)
        draw_text(surface, f"{count} saved" if count else "No saved equations yet.",
                  fnt["heading"] if count else fnt["body"], TEXT_COLOR,
                  10, _HEADER_H // 2, anchor="midleft")
        if self.session.notice:
            draw_text(surface, self.session.notice, fnt["small"], YELLOW,
                      SCREEN_W // 2 + 20, _HEADER_H // 2, anchor="center")
        draw_rounded_rect(surface, _DEL_BG if count else CARD_BG, _CLEAR_RECT, radius=6)
        draw_text(surface, "Clear all", fnt["body"], RED if count else TEXT_MUTED,
                  _CLEAR_RECT.centerx, _CLEAR_RECT.centery, anchor="center")

    def _draw_list(self, surface: pygame.Surface, fnt: dict) -> None:
        clip = surface.get_clip()
        surface.set_clip(_LIST_RECT)
        try:
            for i, item in enumerate(self.items):
                row = self.row_rect(i)
                if row.bottom < _LIST_RECT.top or row.top > _LIST_RECT.bottom:
                    continue
                self._draw_row(surface, fnt, i, item, row)
        finally:
            surface.set_clip(clip)

    def _draw_row(self, surface, fnt, index: int, item: dict, row: pygame.Rect) -> None:
        draw_rounded_rect(surface, CARD_BG, row, radius=8)
        text_w = row.width - 2 * _BTN_W - 24

        if self.renaming == item.get("id"):
            title, color = self.rename_text + "_", ACCENT
        else:
            title = item.get("label") or format_timestamp(item.get("ts"))
            color = TEXT_MUTED
        draw_text(surface, fit_text(title, fnt["small"], text_w), fnt["small"], color,
                  row.left + 8, row.top + 5)

        equation = canonical_display(item.get("expr", ""), item.get("frac", ""))
        draw_text(surface, fit_text(equation, fnt["body"], text_w), fnt["body"], GREEN,
                  row.left + 8, row.bottom - 6, anchor="bottomleft")

        load, delete = self.load_rect(index), self.delete_rect(index)
        draw_rounded_rect(surface, _LOAD_BG, load, radius=6)
        draw_text(surface, "Load", fnt["body"], ACCENT, load.centerx, load.centery, anchor="center")
        draw_rounded_rect(surface, _DEL_BG, delete, radius=6)
        draw_text(surface, "Del", fnt["body"], RED, delete.centerx, delete.centery, anchor="center")

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def on_enter(self) -> None:
        self.scroll = min(self.scroll, self._max_scroll())

    def on_exit(self) -> None:
        self.finish_rename()
        self.handle_cancel()
        self.confirm.close()
