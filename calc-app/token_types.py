"""
Tape Calc - Expression Tokens

A token is either an operand (canonical numeric text plus an optional
human display such as ``1 1/2`` or ``2′ 6″``) or one of the four binary
operators.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from unit_format import pretty_op

OPERATORS = ("+", "-", "*", "/")
MULTIPLICATIVE = ("*", "/")
ADDITIVE = ("+", "-")


@dataclass(frozen=True)
class Operand:
    value: str
    display: str | None = None

    @property
    def text(self) -> str:
        """The human label, falling back to the canonical value."""
        return self.display if self.display is not None else self.value


@dataclass(frozen=True)
class Operator:
    kind: str

    def __post_init__(self) -> None:
        if self.kind not in OPERATORS:
            raise ValueError(f"Unknown operator: {self.kind!r}")

    @property
    def glyph(self) -> str:
        return pretty_op(self.kind)


Token = Union[Operand, Operator]


def is_operator(token) -> bool:
    return isinstance(token, Operator)
