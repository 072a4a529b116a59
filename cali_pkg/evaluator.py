"""Expression evaluation.

This module handles:
- Walking an expression tree to a typed Value
- The closed set of operator rules between value kinds
- Percentage application, unit/currency conversion and date offsets
- Full-document evaluation for callers that do not need incremental updates

Evaluation never raises for bad input and never writes into the variable
environment. An assignment comes back as an ``Assignment`` wrapper and the
caller decides whether to store it.
"""

from __future__ import annotations

import datetime
import math
from typing import Callable, MutableMapping, Optional

from .config import DATE_MONTH_DAYS, WEEKDAYS
from .currency import RateCache
from .expressions import (
    AssignmentExpr,
    BinaryOpExpr,
    ConvertExpr,
    DateOffsetExpr,
    ErrorExpr,
    Expr,
    NumberExpr,
    Op,
    PercentageExpr,
    PercentOfExpr,
    UnitValueExpr,
    VariableExpr,
)
from .formatting import format_value
from .logging_config import get_logger
from .parser import Variables, is_blank_or_comment, parse_line
from .types import Assignment, Date, Error, Number, Percentage, Unit, Value, unwrap
from .units import DATA_UNITS, convert_units, is_currency, normalize_unit

logger = get_logger("evaluator")

Today = Callable[[], datetime.date]


def evaluate(
    expr: Expr,
    variables: Variables,
    rates: RateCache | None = None,
    today: Optional[Today] = None,
) -> Value:
    """Evaluate an expression tree.

    Args:
        expr: Expression produced by ``parse_line``
        variables: Bound variables (read only)
        rates: Exchange-rate cache for currency conversions (process default if None)
        today: Callable returning the current date (``datetime.date.today`` if None)

    Returns:
        The resulting Value; ``Error`` for any failure
    """
    if isinstance(expr, NumberExpr):
        return Number(expr.value)
    if isinstance(expr, PercentageExpr):
        return Percentage(expr.value)
    if isinstance(expr, UnitValueExpr):
        return Unit(expr.value, expr.unit)
    if isinstance(expr, VariableExpr):
        if expr.name in variables:
            return variables[expr.name]
        return Error(f"Unknown variable: {expr.name}")
    if isinstance(expr, AssignmentExpr):
        return Assignment(expr.name, evaluate(expr.expr, variables, rates, today))
    if isinstance(expr, BinaryOpExpr):
        left = evaluate(expr.left, variables, rates, today)
        right = evaluate(expr.right, variables, rates, today)
        return evaluate_binary_op(left, expr.op, right, rates)
    if isinstance(expr, PercentOfExpr):
        percent = evaluate(expr.percent, variables, rates, today)
        value = evaluate(expr.value, variables, rates, today)
        return evaluate_percent_of(percent, value)
    if isinstance(expr, ConvertExpr):
        value = evaluate(expr.value, variables, rates, today)
        return convert_value(value, expr.target_unit, rates)
    if isinstance(expr, DateOffsetExpr):
        current = today() if today is not None else datetime.date.today()
        return calculate_date_offset(expr.day, expr.amount, expr.unit, current)
    if isinstance(expr, ErrorExpr):
        return Error(expr.message)
    return Error(f"Unsupported expression: {type(expr).__name__}")


def _cannot(op: Op, left: Value, right: Value) -> Error:
    return Error(f"Cannot perform {op.value} on {format_value(left)} and {format_value(right)}")


def evaluate_binary_op(
    left: Value, op: Op, right: Value, rates: RateCache | None = None
) -> Value:
    """Apply ``op`` to two values according to their kinds."""
    left = unwrap(left)
    right = unwrap(right)

    if isinstance(left, Error):
        return left
    if isinstance(right, Error):
        return right

    if isinstance(left, Number) and isinstance(right, Number):
        return _number_op(left.value, op, right.value)

    if isinstance(left, Number) and isinstance(right, Percentage):
        a, p = left.value, right.value
        if op is Op.MULTIPLY:
            return Number(a * (p / 100.0))
        if op is Op.ADD:
            return Number(a + a * p / 100.0)
        if op is Op.SUBTRACT:
            return Number(a - a * p / 100.0)
        return _cannot(op, left, right)

    if isinstance(left, Percentage) and isinstance(right, Number):
        if op is Op.MULTIPLY:
            return Number((left.value / 100.0) * right.value)
        return _cannot(op, left, right)

    if isinstance(left, Unit) and isinstance(right, Percentage):
        a, p = left.value, right.value
        if op is Op.ADD:
            return Unit(a + a * p / 100.0, left.unit)
        if op is Op.SUBTRACT:
            return Unit(a - a * p / 100.0, left.unit)
        return _cannot(op, left, right)

    if isinstance(left, Unit) and isinstance(right, Unit):
        if op in (Op.ADD, Op.SUBTRACT):
            return _add_units(left, op, right, rates)
        return _cannot(op, left, right)

    if isinstance(left, Unit) and isinstance(right, Number):
        if op is Op.MULTIPLY:
            return Unit(left.value * right.value, left.unit)
        if op is Op.DIVIDE:
            if right.value == 0:
                return Error("Division by zero")
            return Unit(left.value / right.value, left.unit)
        return _cannot(op, left, right)

    if isinstance(left, Number) and isinstance(right, Unit):
        if op is Op.ADD:
            return Unit(left.value + right.value, right.unit)
        if op is Op.SUBTRACT:
            return Unit(left.value - right.value, right.unit)
        if op is Op.MULTIPLY:
            return Unit(left.value * right.value, right.unit)
        return _cannot(op, left, right)

    if isinstance(left, Date) and isinstance(right, Number):
        if op in (Op.ADD, Op.SUBTRACT):
            return _shift_date(left.value, right.value if op is Op.ADD else -right.value)
        return _cannot(op, left, right)

    return _cannot(op, left, right)


def _number_op(a: float, op: Op, b: float) -> Value:
    if op is Op.ADD:
        return Number(a + b)
    if op is Op.SUBTRACT:
        return Number(a - b)
    if op is Op.MULTIPLY:
        return Number(a * b)
    if op is Op.DIVIDE:
        if b == 0:
            return Error("Division by zero")
        return Number(a / b)
    if op is Op.MODULO:
        if b == 0:
            return Error("Modulo by zero")
        return Number(math.fmod(a, b))
    if op is Op.POWER:
        try:
            return Number(math.pow(a, b))
        except ValueError:
            return Error(f"Invalid power: {a} ^ {b}")
        except OverflowError:
            return Error("Power result too large")
    return Error(f"Unsupported operator: {op.value}")


def _add_units(left: Unit, op: Op, right: Unit, rates: RateCache | None) -> Value:
    """Add or subtract two unit values, converting the right side into the left unit."""
    sign = 1.0 if op is Op.ADD else -1.0

    if left.unit == right.unit:
        return Unit(left.value + sign * right.value, left.unit)

    unit_a = normalize_unit(left.unit)
    unit_b = normalize_unit(right.unit)
    if unit_a == unit_b:
        return Unit(left.value + sign * right.value, left.unit)

    converted = convert_units(right.value, unit_b, unit_a, rates)
    if converted is None:
        if is_currency(unit_a) and is_currency(unit_b):
            return Error(f"Cannot convert from {right.unit} to {left.unit}")
        return Error(f"Cannot perform {op.value} on {left.unit} and {right.unit}")
    return Unit(left.value + sign * converted, left.unit)


def _shift_date(day: datetime.date, days: float) -> Value:
    try:
        return Date(day + datetime.timedelta(days=int(days)))
    except (OverflowError, ValueError):
        return Error("Date out of range")


def evaluate_percent_of(percent: Value, value: Value) -> Value:
    """``p of v``: a number or percentage applied to a number or unit value."""
    percent = unwrap(percent)
    value = unwrap(value)

    if isinstance(percent, Error):
        return percent
    if isinstance(value, Error):
        return value

    if isinstance(percent, (Number, Percentage)):
        fraction = percent.value / 100.0
        if isinstance(value, Number):
            return Number(fraction * value.value)
        if isinstance(value, Unit):
            return Unit(fraction * value.value, value.unit)
    return Error("Invalid percentage calculation")


def _display_unit(target_unit: str, normalized_target: str) -> str:
    if normalized_target in DATA_UNITS:
        return normalized_target
    if all(c.isupper() for c in target_unit):
        return target_unit
    return normalized_target


def convert_value(value: Value, target_unit: str, rates: RateCache | None = None) -> Value:
    """Convert a unit value to ``target_unit``; a bare number is tagged with it."""
    value = unwrap(value)
    target_unit = target_unit.strip()
    normalized_target = normalize_unit(target_unit)
    display_unit = _display_unit(target_unit, normalized_target)

    if isinstance(value, Error):
        return value

    if isinstance(value, Unit):
        normalized_source = normalize_unit(value.unit)
        if normalized_source == normalized_target:
            return Unit(value.value, display_unit)

        converted = convert_units(value.value, normalized_source, normalized_target, rates)
        if converted is None:
            logger.debug(f"No conversion path {normalized_source} -> {normalized_target}")
            return Error(f"Cannot convert from {value.unit} to {target_unit}")
        return Unit(converted, display_unit)

    if isinstance(value, Number):
        return Unit(value.value, display_unit)

    return Error(
        f"Cannot convert value to {target_unit}. "
        f"Try assigning the unit first with 'variable * 1 {target_unit}'"
    )


def calculate_date_offset(
    day_name: str, amount: int, unit: str, today: datetime.date
) -> Value:
    """Next occurrence of ``day_name`` after ``today`` (a week ahead if today matches), plus an offset."""
    day_name = day_name.lower()
    if day_name not in WEEKDAYS:
        return Error(f"Unknown day: {day_name}")

    days_until = (WEEKDAYS.index(day_name) - today.weekday()) % 7 or 7
    next_day = today + datetime.timedelta(days=days_until)

    if unit in ("days", "day"):
        offset = amount
    elif unit in ("weeks", "week"):
        offset = amount * 7
    elif unit in ("months", "month"):
        offset = amount * DATE_MONTH_DAYS
    else:
        return Error(f"Unknown time unit: {unit}")

    return _shift_date(next_day, offset)


def evaluate_line(
    line: str,
    variables: Variables,
    rates: RateCache | None = None,
    today: Optional[Today] = None,
) -> Value:
    """Parse and evaluate one line against ``variables``."""
    return evaluate(parse_line(line, variables, rates), variables, rates, today)


def evaluate_lines(
    lines: list[str],
    variables: MutableMapping[str, Value],
    rates: RateCache | None = None,
    today: Optional[Today] = None,
) -> list[str]:
    """Evaluate every line in order, committing assignments as they happen.

    Blank and comment lines produce empty results.

    Returns:
        One formatted result string per input line
    """
    results = []
    for line in lines:
        if is_blank_or_comment(line):
            results.append("")
            continue

        value = evaluate_line(line, variables, rates, today)
        if isinstance(value, Assignment):
            variables[value.name] = unwrap(value)
        results.append(format_value(value))
    return results
