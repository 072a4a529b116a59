"""Expression tree produced by the line parser.

Nodes are frozen dataclasses built fresh for every parse and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class Op(Enum):
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULO = "%"
    POWER = "^"

    @classmethod
    def from_symbol(cls, symbol: str) -> Op:
        return cls(symbol)


@dataclass(frozen=True)
class NumberExpr:
    value: float


@dataclass(frozen=True)
class VariableExpr:
    name: str


@dataclass(frozen=True)
class UnitValueExpr:
    value: float
    unit: str


@dataclass(frozen=True)
class PercentageExpr:
    value: float


@dataclass(frozen=True)
class AssignmentExpr:
    name: str
    expr: Expr


@dataclass(frozen=True)
class BinaryOpExpr:
    left: Expr
    op: Op
    right: Expr


@dataclass(frozen=True)
class PercentOfExpr:
    """``percent of value``; the percent side may be a number, a percentage or a variable."""

    percent: Expr
    value: Expr


@dataclass(frozen=True)
class ConvertExpr:
    value: Expr
    target_unit: str


@dataclass(frozen=True)
class DateOffsetExpr:
    """Next occurrence of ``day`` shifted by ``amount`` ``unit``s (days, weeks or months)."""

    day: str
    amount: int
    unit: str


@dataclass(frozen=True)
class ErrorExpr:
    message: str


Expr = Union[
    NumberExpr,
    VariableExpr,
    UnitValueExpr,
    PercentageExpr,
    AssignmentExpr,
    BinaryOpExpr,
    PercentOfExpr,
    ConvertExpr,
    DateOffsetExpr,
    ErrorExpr,
]
