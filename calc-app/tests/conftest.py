"""
pytest configuration for the calc-app tests.
- Runs pygame in headless/dummy mode (no physical display required).
- Adds calc-app/ to sys.path.
- Defines FakeClock (imported by the tests) so debounce, long presses and
  flings can be stepped deterministically.
"""
import os
import sys

# Headless SDL; must be set before pygame is imported
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

# Path setup
_tests_dir = os.path.dirname(__file__)
sys.path.insert(0, os.path.join(_tests_dir, ".."))            # calc-app/


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now
