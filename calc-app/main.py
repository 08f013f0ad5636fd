"""
Tape Calc - Main Entry Point

Builds the session and the pygame UI, then runs the main event loop.

Persistence failures (unreadable or unwritable store file) are logged and
the app continues with empty memory slots and no saved equations.

Frame flow
----------
  Every frame:
    1. mgr.handle_events()  → touches / drags / keys reach the active screen
    2. mgr.update(dt)       → long-press timers, debounced evaluation, fling
    3. mgr.draw()           → active screen + nav bar, display flip

  Both screens share one CalculatorSession, so a saved equation loaded on the
  Saved screen shows up on the calculator immediately.
"""

import argparse
import logging
import sys
import time

import pygame

import config
from screen_calculator import ScreenCalculator
from screen_saved import ScreenSaved
from session import CalculatorSession
from storage import KeyValueStore
from ui_manager import UIManager

log = logging.getLogger(__name__)


def _parse_args(argv):
    parser = argparse.ArgumentParser(prog="tape-calc", description="Feet / inch tape calculator")
    parser.add_argument("--store", default=config.STORAGE_PATH,
                        help="JSON file for memory slots and saved equations")
    parser.add_argument("--windowed", action="store_true",
                        help="open a desktop window instead of fullscreen")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = _parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )

    # ------------------------------------------------------------------
    # Session (state + persistence)
    # ------------------------------------------------------------------

    store = KeyValueStore(args.store)
    session = CalculatorSession(store)
    log.info("Using store %s (%d saved equations)", store.path, len(session.saved))

    # ------------------------------------------------------------------
    # Pygame + UIManager (creates the 480x320 display)
    # ------------------------------------------------------------------

    mgr = UIManager(fullscreen=not args.windowed)

    calculator = ScreenCalculator(mgr, session)
    saved      = ScreenSaved(mgr, session, on_loaded=lambda: mgr.switch_to("calculator"))

    mgr.register_screen("calculator", calculator)
    mgr.register_screen("saved",      saved)

    mgr.switch_to("calculator")

    log.info("Tape Calc started")

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    last_t = time.monotonic()
    try:
        running = True
        while running:
            now = time.monotonic()
            dt  = now - last_t
            last_t = now

            running = mgr.handle_events()
            mgr.update(dt)
            mgr.draw()

    finally:
        pygame.quit()
        log.info("Pygame quit")


if __name__ == "__main__":
    main()
