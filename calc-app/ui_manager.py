"""
Tape Calc - Pygame Display Manager

Manages pygame initialisation, screen transitions, the nav bar, and the main
render loop for a 480×320 touchscreen.

The UIManager can be constructed in two modes:

  1. Hardware mode (no surface argument):
       mgr = UIManager()
     pygame.init() is called, a 480×320 display is created, and the clock
     and fonts are set up.

  2. Headless / test mode (surface provided):
       mgr = UIManager(surface)
     pygame is NOT re-initialised.  The supplied surface is used directly.
     Clock and display-flip calls are skipped so the class works with a
     MagicMock surface under SDL dummy mode.

Touch handling: a press, drag and release on the content area reach the
active screen as handle_touch / handle_drag / handle_release.  Losing window
focus mid-press is delivered as handle_cancel so no gesture stays stuck.
"""

from __future__ import annotations

from typing import Callable

import pygame

import config


# ---------------------------------------------------------------------------
# Layout constants
# ---------------------------------------------------------------------------

SCREEN_W  = config.SCREEN_W
SCREEN_H  = config.SCREEN_H
NAV_H     = config.NAV_H        # nav bar height, pinned to bottom
CONTENT_H = SCREEN_H - NAV_H    # 272 px available for screen content

# Content and nav bar rects for convenience
CONTENT_AREA = pygame.Rect(0, 0, SCREEN_W, CONTENT_H)
NAV_BAR_AREA = pygame.Rect(0, SCREEN_H - NAV_H, SCREEN_W, NAV_H)

# ---------------------------------------------------------------------------
# Colour palette
# ---------------------------------------------------------------------------

BG_COLOR    = (15,  23,  42)   # dark blue-gray, main background
CARD_BG     = (22,  33,  62)
TEXT_COLOR  = (226, 232, 240)  # near-white, primary text
TEXT_MUTED  = (150, 160, 180)
ACCENT      = (56,  189, 248)  # cyan, active nav / operators
GREEN       = (52,  211, 153)  # exact result
ORANGE      = (251, 146, 60)   # feet key
YELLOW      = (251, 191, 36)   # rounding arrow / hold highlight
RED         = (248, 113, 113)  # clear / delete
NAV_BG      = (8,   15,  30)   # nav bar background, darker than BG_COLOR
NAV_BORDER  = (30,  41,  59)   # 1-px top border on the nav bar
OVERLAY_DIM = (0,   0,   0,   160)

# ---------------------------------------------------------------------------
# Nav bar configuration
# ---------------------------------------------------------------------------

_NAV_LABELS = ["Calculator", "Saved"]
_NAV_KEYS   = ["calculator", "saved"]
_NAV_BTN_W  = SCREEN_W // len(_NAV_KEYS)   # 240 px each


# ---------------------------------------------------------------------------
# Fonts  (module-level cache, safe to call multiple times)
# ---------------------------------------------------------------------------

_FONT_CACHE: dict[str, pygame.font.Font] | None = None


def load_font(family: str, size: int, bold: bool = False) -> pygame.font.Font:
    """Load a font by family name with a fallback to the default font."""
    try:
        font = pygame.font.SysFont(family, size, bold=bold)
        # SysFont can return None in dummy SDL environments
        if font is None:
            raise RuntimeError("SysFont returned None")
        return font
    except Exception:
        return pygame.font.SysFont(None, size, bold=bold)


def fonts() -> dict[str, pygame.font.Font]:
    """Return the cached font dict, initialising on first call.

    DejaVu Sans is used throughout because it carries the ′ ″ ▴ ▾ glyphs.
    """
    global _FONT_CACHE
    if _FONT_CACHE is None:
        pygame.font.init()
        _FONT_CACHE = {
            "result":  load_font("dejavusans", 26, bold=True),
            "heading": load_font("dejavusans", 20, bold=True),
            "key":     load_font("dejavusans", 18, bold=True),
            "body":    load_font("dejavusans", 15),
            "small":   load_font("dejavusans", 12),
            "tiny":    load_font("dejavusans", 10),
        }
    return _FONT_CACHE


# ---------------------------------------------------------------------------
# Pure-surface drawing helpers
# ---------------------------------------------------------------------------

def draw_text(
    surface: pygame.Surface,
    text: str,
    font: pygame.font.Font,
    color: tuple,
    x: int,
    y: int,
    anchor: str = "topleft",
) -> pygame.Rect:
    """Render *text* onto *surface* at the given anchor position."""
    surf = font.render(text, True, color)
    rect = surf.get_rect()
    setattr(rect, anchor, (x, y))
    surface.blit(surf, rect)
    return rect


def draw_rounded_rect(
    surface: pygame.Surface,
    color: tuple,
    rect: pygame.Rect,
    radius: int = 8,
    width: int = 0,
) -> None:
    """Draw a filled or outlined rounded rectangle."""
    pygame.draw.rect(surface, color, rect, width=width, border_radius=radius)


def fit_text(text: str, font: pygame.font.Font, max_w: int) -> str:
    """Trim *text* from the left with an ellipsis until it fits *max_w*."""
    if font.size(text)[0] <= max_w:
        return text
    while text and font.size("…" + text)[0] > max_w:
        text = text[1:]
    return "…" + text


def press_shade(color: tuple, factor: float = 0.65) -> tuple:
    return tuple(max(0, int(c * factor)) for c in color)


# ---------------------------------------------------------------------------
# Confirm overlay
# ---------------------------------------------------------------------------

class ConfirmOverlay:
    """Modal yes/no prompt drawn over a screen.

    While open it swallows every touch; a tap on *Yes* runs the pending
    action, *No* or a tap outside the card closes it.
    """

    _CARD = pygame.Rect(40, 60, SCREEN_W - 80, 150)

    def __init__(self) -> None:
        self.message = ""
        self._on_yes: Callable[[], object] | None = None
        self._yes_rect = pygame.Rect(self._CARD.left + 24, self._CARD.bottom - 56, 150, 40)
        self._no_rect = pygame.Rect(self._CARD.right - 174, self._CARD.bottom - 56, 150, 40)

    @property
    def is_open(self) -> bool:
        return self._on_yes is not None

    def open(self, message: str, on_yes: Callable[[], object]) -> None:
        self.message = message
        self._on_yes = on_yes

    def close(self) -> None:
        self.message = ""
        self._on_yes = None

    def accept(self) -> None:
        action = self._on_yes
        self.close()
        if action is not None:
            action()

    def handle_touch(self, x: int, y: int) -> bool:
        """Returns ``True`` if the touch was consumed."""
        if not self.is_open:
            return False
        if self._yes_rect.collidepoint(x, y):
            self.accept()
        elif self._no_rect.collidepoint(x, y) or not self._CARD.collidepoint(x, y):
            self.close()
        return True

    def draw(self, surface: pygame.Surface, fnt: dict) -> None:
        if not self.is_open:
            return
        dim = pygame.Surface((SCREEN_W, CONTENT_H), pygame.SRCALPHA)
        dim.fill(OVERLAY_DIM)
        surface.blit(dim, (0, 0))

        draw_rounded_rect(surface, CARD_BG, self._CARD, radius=10)
        draw_rounded_rect(surface, NAV_BORDER, self._CARD, radius=10, width=2)

        # Wrap the message over up to three lines
        words = self.message.split()
        lines, line = [], ""
        for word in words:
            trial = f"{line} {word}".strip()
            if fnt["body"].size(trial)[0] > self._CARD.width - 32 and line:
                lines.append(line)
                line = word
            else:
                line = trial
        if line:
            lines.append(line)
        for i, text in enumerate(lines[:3]):
            draw_text(surface, text, fnt["body"], TEXT_COLOR,
                      self._CARD.centerx, self._CARD.top + 18 + i * 22, anchor="midtop")

        draw_rounded_rect(surface, RED, self._yes_rect, radius=8)
        draw_text(surface, "Yes", fnt["key"], BG_COLOR,
                  self._yes_rect.centerx, self._yes_rect.centery, anchor="center")
        draw_rounded_rect(surface, NAV_BORDER, self._no_rect, radius=8)
        draw_text(surface, "No", fnt["key"], TEXT_COLOR,
                  self._no_rect.centerx, self._no_rect.centery, anchor="center")


# ---------------------------------------------------------------------------
# UIManager
# ---------------------------------------------------------------------------

class UIManager:
    """Manages registered screens and dispatches events, updates, and draws.

    Screens are registered by name and activated via switch_to() / switch_screen().
    Only the active screen receives update() and draw() calls.  handle_event()
    is also forwarded exclusively to the active screen.

    Construction:
        UIManager()          – hardware mode: calls pygame.init(), creates
                               the 480×320 display.
        UIManager(surface)   – test/headless mode: uses the provided surface,
                               skips pygame init and display management.

    Args:
        surface:    Optional pygame.Surface for headless / test mode.
        fullscreen: Hardware mode only; ``False`` opens a desktop window.
    """

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def __init__(self, surface=None, fullscreen: bool = True) -> None:
        self._test_mode = surface is not None

        if self._test_mode:
            # Headless path: use the supplied mock/real surface as-is.
            # Initialise only the font subsystem (no display required).
            pygame.font.init()
            self._surface = surface
            self.screen   = surface       # alias used by drawing helpers
            self.clock    = None
        else:
            pygame.init()
            flags = pygame.FULLSCREEN if fullscreen else 0
            self.screen = pygame.display.set_mode((SCREEN_W, SCREEN_H), flags)
            pygame.display.set_caption("Tape Calc")
            self._surface = self.screen
            self.clock = pygame.time.Clock()
        self.fonts = fonts()

        # Screen registry
        self._screens: dict[str, object] = {}
        self._active: str | None = None

        # Nav hit-rects are built lazily in draw_nav_bar(); initialise to []
        # so _nav_hit() never crashes before the first draw.
        self._nav_rects: list[pygame.Rect] = []

        # True between a content-area press and its release
        self._pointer_down = False

        self.current_screen: str = "calculator"

    # ------------------------------------------------------------------
    # Screen registry
    # ------------------------------------------------------------------

    def register_screen(self, name: str, screen_obj) -> None:
        """Add a screen to the registry under the given name.

        Args:
            name:       Unique string key (e.g. ``'calculator'``).
            screen_obj: Object implementing the Screen interface contract
                        (update, draw, handle_event, optionally on_enter/on_exit).
        """
        self._screens[name] = screen_obj

    def switch_to(self, name: str) -> None:
        """Activate the named screen.

        Raises:
            KeyError: If *name* has not been registered.
        """
        if name not in self._screens:
            raise KeyError(f"Unknown screen: {name!r}")
        if self._active is not None and self._active != name:
            old = self._screens[self._active]
            if hasattr(old, "on_exit"):
                old.on_exit()
        self._active = name
        self.current_screen = name
        new = self._screens[name]
        if hasattr(new, "on_enter"):
            new.on_enter()

    def switch_screen(self, name: str) -> None:
        """Alias for :meth:`switch_to`."""
        self.switch_to(name)

    # ------------------------------------------------------------------
    # Main-loop hooks
    # ------------------------------------------------------------------

    def handle_event(self, event) -> None:
        """Forward a single pygame event to the active screen (if any)."""
        if self._active is not None:
            self._screens[self._active].handle_event(event)

    def _active_screen(self):
        return self._screens[self._active] if self._active is not None else None

    def handle_events(self) -> bool:
        """Drain the pygame event queue, handle nav taps, and dispatch to the active screen.

        Returns:
            ``False`` if the application should quit (QUIT or Escape pressed),
            ``True`` otherwise.
        """
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                return False
            if not self.dispatch_pointer(event):
                self.handle_event(event)
        return True

    def dispatch_pointer(self, event) -> bool:
        """Route one mouse / focus event.  Returns ``True`` if it was a pointer event."""
        screen = self._active_screen()
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if self._nav_hit(event.pos) is None and screen is not None:
                self._pointer_down = True
                if hasattr(screen, "handle_touch"):
                    screen.handle_touch(event.pos[0], event.pos[1])
            return True
        if event.type == pygame.MOUSEMOTION:
            if self._pointer_down and screen is not None and hasattr(screen, "handle_drag"):
                screen.handle_drag(event.pos[0], event.pos[1])
            return True
        if event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            if self._pointer_down:
                self._pointer_down = False
                if screen is not None and hasattr(screen, "handle_release"):
                    screen.handle_release(event.pos[0], event.pos[1])
            return True
        if event.type == pygame.WINDOWFOCUSLOST:
            if self._pointer_down:
                self._pointer_down = False
                if screen is not None and hasattr(screen, "handle_cancel"):
                    screen.handle_cancel()
            return True
        return False

    def update(self, dt: float) -> None:
        """Advance the active screen by *dt* seconds."""
        if self._active is not None:
            self._screens[self._active].update(dt)

    def draw(self) -> None:
        """Render the active screen onto the surface, then overlay the nav bar."""
        if self._active is not None:
            self._screens[self._active].draw(self._surface)

        if not self._test_mode:
            # Only draw nav bar and flip in hardware mode to avoid
            # calling pygame.draw on a MagicMock surface.
            self.draw_nav_bar()
            pygame.display.flip()
            if self.clock is not None:
                self.clock.tick(60)

    # ------------------------------------------------------------------
    # Nav bar
    # ------------------------------------------------------------------

    def draw_nav_bar(self) -> None:
        """Draw the bottom nav bar and rebuild ``self._nav_rects`` for hit-testing."""
        nav_y = SCREEN_H - NAV_H

        pygame.draw.line(self._surface, NAV_BORDER, (0, nav_y), (SCREEN_W - 1, nav_y), 1)

        self._nav_rects = []
        for i, (label, key) in enumerate(zip(_NAV_LABELS, _NAV_KEYS)):
            rect = pygame.Rect(i * _NAV_BTN_W, nav_y + 1, _NAV_BTN_W, NAV_H - 1)
            self._nav_rects.append(rect)

            is_active = (key == self._active)
            fill_color = ACCENT if is_active else NAV_BG
            label_color = BG_COLOR if is_active else TEXT_COLOR

            pygame.draw.rect(self._surface, fill_color, rect)
            draw_text(self._surface, label, self.fonts["body"], label_color,
                      rect.centerx, rect.centery, anchor="center")

    def _nav_hit(self, pos) -> str | None:
        """Test *pos* against nav bar rects, switching screens on a hit.

        Returns:
            The screen key string if a nav button was hit, else ``None``.
        """
        for rect, key in zip(self._nav_rects, _NAV_KEYS):
            if rect.collidepoint(pos):
                if key in self._screens:
                    self.switch_to(key)
                return key
        return None
