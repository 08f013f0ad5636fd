"""
Tape Calc - Tape Continuous Input Widget

An analog ruler strip.  In ``result`` mode it mirrors the last good result;
in ``entry`` mode the user scrubs it to pick a value.

Gesture handling (all timestamps in seconds, monotonic):

  pointer_down   stop any fling, remember the start centre
  pointer_move   past TAPE_SWIPE_START_PX → entry mode; centre follows the
                 finger at width / TAPE_VIEW_IN pixels per inch
  pointer_up     no movement → toggle mode; fast → fling; else commit
  pointer_cancel same as pointer_up

A fling keeps moving the centre with geometrically decaying velocity until
it falls under TAPE_FLING_STOP_V or hits either end, then commits.  A commit
snaps to 1/16″ and replaces the current entry in the expression.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

import pygame

import config
from unit_format import snap_to_sixteenth

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Drawing constants
# ---------------------------------------------------------------------------

TAPE_BG      = (250, 204, 21)    # tape yellow
TICK_COLOR   = (24,  24,  27)
CENTER_COLOR = (220, 38,  38)
HINT_COLOR   = (113, 63,  18)

# Tick height as a share of the tape height, by weight
_TICK_HEIGHTS = {
    "major":  0.55,
    "large":  0.42,
    "medium": 0.30,
    "small":  0.18,
}
_CENTER_LINE_W = 4

MODE_RESULT = "result"
MODE_ENTRY  = "entry"


@dataclass
class TapeState:
    mode: str = MODE_RESULT
    entry_center: float = 0.0
    entry_touched: bool = False


@dataclass(frozen=True)
class Tick:
    x: float
    weight: str
    label: str | None = None


def clamp_tape_value(value: float) -> float:
    return max(0.0, min(float(config.TAPE_MAX_IN), value))


def tape_ticks(center: float, width: float,
               view_in: float = config.TAPE_VIEW_IN) -> list[Tick]:
    """Sixteenth-inch ticks around *center* for a tape *width* pixels wide.

    Major ticks fall on whole inches and carry a label; large, medium and
    small ticks mark halves, quarters and the remaining sixteenths.
    """
    center = clamp_tape_value(center)
    if width <= 0:
        return []
    mid = width / 2
    ppi = width / view_in
    start = max(center - view_in / 2, 0.0)
    end = center + view_in / 2

    ticks: list[Tick] = []
    for i in range(math.floor(start * 16), math.ceil(end * 16) + 1):
        inches = i / 16
        x = (inches - center) * ppi + mid
        if i % 16 == 0:
            ticks.append(Tick(x, "major", f"{inches:.0f}"))
        elif i % 8 == 0:
            ticks.append(Tick(x, "large"))
        elif i % 4 == 0:
            ticks.append(Tick(x, "medium"))
        else:
            ticks.append(Tick(x, "small"))
    return ticks


# ---------------------------------------------------------------------------
# Fling
# ---------------------------------------------------------------------------

class Fling:
    """Per-frame decaying motion started on a fast release.

    :meth:`step` advances the centre and marks the fling finished once the
    velocity decays below the stop threshold or a clamp boundary absorbs it.
    """

    def __init__(self, decay: float = config.TAPE_FLING_DECAY,
                 stop_velocity: float = config.TAPE_FLING_STOP_V) -> None:
        self._decay = decay
        self._stop_velocity = stop_velocity
        self.velocity = 0.0
        self.active = False
        self._last_t = 0.0

    def start(self, velocity: float, now: float) -> None:
        self.velocity = velocity
        self.active = True
        self._last_t = now

    def cancel(self) -> None:
        self.active = False
        self.velocity = 0.0

    def step(self, center: float, now: float) -> float:
        """Return the centre after advancing to *now*."""
        if not self.active:
            return center
        dt = max(0.0, now - self._last_t)
        self._last_t = now

        center = clamp_tape_value(center + self.velocity * dt)
        at_low = center <= 0 and self.velocity < 0
        at_high = center >= config.TAPE_MAX_IN and self.velocity > 0
        if at_low or at_high:
            self.velocity = 0.0
        else:
            self.velocity *= self._decay ** (dt * 60)

        if abs(self.velocity) <= self._stop_velocity:
            self.active = False
        return center


# ---------------------------------------------------------------------------
# TapeWidget
# ---------------------------------------------------------------------------

class TapeWidget:
    """Tape gesture state machine and renderer.

    Args:
        session:  The owning CalculatorSession (holds ``tape_state``,
                  ``last_good`` and ``commit_tape_value``).
        width_px: Width of the tape strip in pixels.
        clock:    Monotonic time source, used when events carry no timestamp.
    """

    def __init__(self, session, width_px: float = 224,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self._session = session
        self.width_px = float(width_px)
        self._clock = clock

        self._center = 0.0          # centre currently drawn
        self._ticks: list[Tick] = []
        self._redraw_pending = True

        # Gesture variables, only meaningful while a pointer is down
        self._active = False
        self._moved = False
        self._start_x = 0.0
        self._start_center = 0.0
        self._last_x = 0.0
        self._last_t = 0.0
        self._velocity = 0.0

        self._fling = Fling()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> TapeState:
        return self._session.tape_state

    @property
    def mode(self) -> str:
        return self.state.mode

    @property
    def center(self) -> float:
        return self._center

    @property
    def dragging(self) -> bool:
        return self._active

    @property
    def flinging(self) -> bool:
        return self._fling.active

    @property
    def ppi(self) -> float:
        return self.width_px / config.TAPE_VIEW_IN if self.width_px else 0.0

    def display_center(self) -> float:
        state = self.state
        base = state.entry_center if state.mode == MODE_ENTRY else self._session.last_good.value
        return clamp_tape_value(base) if math.isfinite(base) else 0.0

    def set_mode(self, mode: str) -> None:
        state = self.state
        if mode == state.mode:
            return
        if mode == MODE_ENTRY and not state.entry_touched:
            value = self._session.last_good.value
            state.entry_center = clamp_tape_value(value if math.isfinite(value) else 0.0)
        state.mode = mode
        self.refresh(self._session.last_good.value)

    def toggle_mode(self) -> None:
        self.set_mode(MODE_ENTRY if self.state.mode == MODE_RESULT else MODE_RESULT)

    def refresh(self, result_center: float | None = None) -> None:
        """Recentre on the result (result mode) or the entry centre (entry mode)."""
        state = self.state
        if state.mode == MODE_RESULT:
            if result_center is None or not math.isfinite(result_center):
                result_center = self._session.last_good.value
            center = result_center
        else:
            center = state.entry_center
        self._center = clamp_tape_value(center) if math.isfinite(center) else 0.0
        self._redraw_pending = True

    def set_width(self, width_px: float) -> None:
        if width_px != self.width_px:
            self.width_px = float(width_px)
            self._redraw_pending = True

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    def pointer_down(self, x: float, t: float | None = None) -> None:
        self._fling.cancel()
        self._active = True
        self._moved = False
        self._start_x = self._last_x = x
        self._last_t = self._clock() if t is None else t
        self._velocity = 0.0
        self._start_center = self.display_center()
        self._center = self._start_center

    def pointer_move(self, x: float, t: float | None = None) -> None:
        if not self._active:
            return
        now = self._clock() if t is None else t
        dx = x - self._start_x
        if not self._moved and abs(dx) < config.TAPE_SWIPE_START_PX:
            return
        state = self.state
        if not self._moved:
            self._moved = True
            state.mode = MODE_ENTRY
            state.entry_center = self._start_center
            state.entry_touched = True

        ppi = self.ppi
        if not ppi:
            return
        self._center = clamp_tape_value(self._start_center - dx / ppi)
        state.entry_center = self._center

        dt = now - self._last_t
        if dt > 0:
            inst = -((x - self._last_x) / dt) / ppi
            self._velocity = (self._velocity * 0.7 + inst * 0.3) if self._velocity else inst

        self._last_x = x
        self._last_t = now
        self._redraw_pending = True

    def pointer_up(self, t: float | None = None) -> None:
        if not self._active:
            return
        self._active = False

        if not self._moved:
            self.toggle_mode()
            return

        if abs(self._velocity) > config.TAPE_FLING_MIN_V:
            log.debug("tape fling at %.2f in/s", self._velocity)
            self._fling.start(self._velocity, self._clock() if t is None else t)
        else:
            self._commit()

    def pointer_cancel(self, t: float | None = None) -> None:
        self.pointer_up(t)

    def step(self, now: float | None = None) -> None:
        """Advance an in-flight fling by one frame; commits when it settles."""
        if not self._fling.active:
            return
        now = self._clock() if now is None else now
        self._center = self._fling.step(self._center, now)
        self.state.entry_center = self._center
        self._redraw_pending = True
        if not self._fling.active:
            self._commit()

    def _commit(self) -> None:
        if not math.isfinite(self._center):
            return
        snapped = clamp_tape_value(snap_to_sixteenth(self._center))
        self._center = snapped
        state = self.state
        state.entry_center = snapped
        state.entry_touched = True
        self._redraw_pending = True
        self._session.commit_tape_value(snapped)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def frame(self) -> bool:
        """Rebuild the tick list if anything changed since the last frame.

        Returns ``True`` when a rebuild happened; many pointer moves between
        two frames cost a single rebuild.
        """
        if not self._redraw_pending:
            return False
        self._redraw_pending = False
        self._ticks = tape_ticks(self._center, self.width_px)
        return True

    def draw(self, surface: pygame.Surface, rect: pygame.Rect, fonts: dict) -> None:
        self.set_width(rect.width)
        self.frame()

        pygame.draw.rect(surface, TAPE_BG, rect, border_radius=6)
        clip = surface.get_clip()
        surface.set_clip(rect)
        try:
            for tick in self._ticks:
                x = int(round(rect.left + tick.x))
                h = int(rect.height * _TICK_HEIGHTS[tick.weight])
                width = 2 if tick.weight == "major" else 1
                pygame.draw.line(surface, TICK_COLOR, (x, rect.top), (x, rect.top + h), width)
                if tick.label is not None:
                    surf = fonts["small"].render(tick.label, True, TICK_COLOR)
                    label_rect = surf.get_rect(midtop=(x, rect.top + h + 2))
                    surface.blit(surf, label_rect)

            mid_x = rect.left + round(rect.width / 2) - _CENTER_LINE_W // 2
            pygame.draw.rect(surface, CENTER_COLOR,
                             pygame.Rect(mid_x, rect.top, _CENTER_LINE_W, rect.height))

            hint = "Entry" if self.state.mode == MODE_ENTRY else "Result"
            surf = fonts["tiny"].render(hint, True, HINT_COLOR)
            surface.blit(surf, surf.get_rect(bottomleft=(rect.left + 4, rect.bottom - 2)))
        finally:
            surface.set_clip(clip)
