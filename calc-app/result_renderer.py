"""
Tape Calc - Result Renderer

Writes evaluated results into the render sink (two result lines plus the
history line) and tells listeners, chiefly the tape, about the new centre.

The fraction line keeps its rounding arrow separate from the text so the
screen can colour it; ``rounded`` is True whenever an arrow is present.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from unit_format import Formatted

# Optional sign, then the arrow (with its trailing space)
_ARROW_RE = re.compile(r"^(\s*[−-]?)\s*([▴▾])\s*")


@dataclass
class ResultLines:
    """Render sink: what the result and history lines currently show."""
    sign: str = ""
    arrow: str = ""
    fraction_body: str = ""
    decimal_text: str = ""
    history_text: str = ""

    @property
    def rounded(self) -> bool:
        return bool(self.arrow)

    @property
    def fraction_text(self) -> str:
        """The fraction line as plain text, e.g. ``'▾ 3 5/16″'``."""
        if self.arrow:
            return f"{self.sign}{self.arrow} {self.fraction_body}"
        return f"{self.sign}{self.fraction_body}"


def split_arrow(text: str) -> tuple[str, str, str]:
    """Split ``'-▾ 3″'`` into ``('-', '▾', '3″')``; no arrow gives ``('', '', text)``."""
    raw = " ".join((text or "").split())
    m = _ARROW_RE.match(raw)
    if m is None:
        return "", "", raw
    return m.group(1).strip(), m.group(2), raw[m.end():]


class ResultRenderer:
    """Pushes formatted results into a :class:`ResultLines` sink."""

    def __init__(self, lines: ResultLines | None = None) -> None:
        self.lines = lines if lines is not None else ResultLines()
        self._center_listeners: list[Callable[[float], None]] = []

    def add_center_listener(self, callback: Callable[[float], None]) -> None:
        self._center_listeners.append(callback)

    def render_outputs(self, fraction_text: str, decimal_text: str) -> None:
        sign, arrow, body = split_arrow(fraction_text)
        self.lines.sign = sign
        self.lines.arrow = arrow
        self.lines.fraction_body = body
        self.lines.decimal_text = decimal_text or ""

    def show_result(self, value: float, formatted: Formatted) -> None:
        self.render_outputs(formatted.fraction, formatted.decimal)
        for callback in self._center_listeners:
            callback(value)

    def show_history(self, text: str) -> None:
        self.lines.history_text = text

    def clear(self) -> None:
        self.render_outputs("", "")
