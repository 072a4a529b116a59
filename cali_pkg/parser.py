"""Line parser for the calculator language.

This module handles:
- Comment stripping and blank-line detection
- The ordered grammar stages (setrate, assignment, conversion, percentage,
  date offset, binary arithmetic, simple value)
- Building the immutable expression tree consumed by the evaluator

Parsing never raises. Each stage either produces an expression or declines
by returning None, and the final simple-value stage turns anything left over
into an ``ErrorExpr``.

Arithmetic is split textually: the first ``+``/``-`` found from the left
separates the line into two halves (a sign inside an exponent such as
``1e-5`` does not count) that are parsed again from scratch, and
only when there is none are ``* / ^ %`` tried. Additive operators therefore
bind loosest across the whole line and chains of one class group to the
right (``10 - 2 - 3`` is ``10 - (2 - 3)``).
"""

from __future__ import annotations

from typing import Callable, Mapping, Optional

from .config import (
    ADDITIVE_REGEX,
    COMMENT_CHAR,
    CONVERSION_REGEX,
    DATE_OFFSET_REGEX,
    MULTIPLICATIVE_REGEX,
    NUMBER_RE,
    OF_WHAT_IS_REGEX,
    PERCENT_OF_REGEX,
    SETRATE_REGEX,
    UNIT_VALUE_REGEX,
    VAR_NAME_RE,
    VARIABLE_CURRENCY_REGEX,
    VARIABLE_OF_REGEX,
)
from .currency import RateCache, get_default_cache
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
from .logging_config import get_logger
from .types import Value

logger = get_logger("parser")

Variables = Mapping[str, Value]


def strip_comment(line: str) -> str:
    """Drop everything from the first '#' and surrounding whitespace."""
    pos = line.find(COMMENT_CHAR)
    if pos != -1:
        line = line[:pos]
    return line.strip()


def is_blank_or_comment(line: str) -> bool:
    """True for lines that are skipped by evaluation (blank or full-line comment)."""
    trimmed = line.strip()
    return not trimmed or trimmed.startswith(COMMENT_CHAR)


def parse_number(text: str) -> float | None:
    text = text.strip()
    if NUMBER_RE.match(text):
        return float(text)
    return None


def parse_line(
    line: str, variables: Variables, rates: RateCache | None = None
) -> Expr:
    """Parse one line of calculator input into an expression tree.

    Args:
        line: Raw line text (may contain a trailing '#' comment)
        variables: Currently bound variables; some forms only parse when a
            name is bound
        rates: Exchange-rate cache updated by ``setrate`` lines (process
            default if None)

    Returns:
        Expression tree; an ``ErrorExpr`` when no grammar form matches

    Example:
        >>> parse_line("20% of 50", {})
        PercentOfExpr(percent=NumberExpr(value=20.0), value=NumberExpr(value=50.0))
    """
    text = strip_comment(line)
    if not text:
        return ErrorExpr("Empty expression")

    for stage in GRAMMAR_STAGES:
        expr = stage(text, variables, rates)
        if expr is not None:
            logger.debug(f"{stage.__name__} matched {text!r}")
            return expr

    return parse_simple_value(text, variables)


def _parse_set_rate(
    line: str, variables: Variables, rates: RateCache | None
) -> Optional[Expr]:
    """``setrate USD to EUR = 0.92`` installs a manual exchange rate."""
    match = SETRATE_REGEX.fullmatch(line)
    if not match:
        return None

    from_currency = match.group(1).upper()
    to_currency = match.group(2).upper()
    rate = float(match.group(3))

    cache = rates if rates is not None else get_default_cache()
    if not cache.set_exchange_rate(from_currency, to_currency, rate):
        return None
    return UnitValueExpr(rate, to_currency)


def _parse_assignment(
    line: str, variables: Variables, rates: RateCache | None
) -> Optional[Expr]:
    """``name = expression``; the first '=' splits name from expression."""
    if "=" not in line:
        return None

    name, rest = line.split("=", 1)
    name = name.strip()
    if not VAR_NAME_RE.match(name):
        return None
    return AssignmentExpr(name, parse_line(rest, variables, rates))


def _parse_conversion(
    line: str, variables: Variables, rates: RateCache | None
) -> Optional[Expr]:
    """``expr in unit`` / ``expr to unit``; the last keyword on the line splits."""
    match = CONVERSION_REGEX.fullmatch(line)
    if not match:
        return None

    value_expr = parse_line(match.group(1), variables, rates)
    return ConvertExpr(value_expr, match.group(2).strip())


def _parse_percentage(
    line: str, variables: Variables, rates: RateCache | None
) -> Optional[Expr]:
    match = PERCENT_OF_REGEX.fullmatch(line)
    if match:
        percent_expr = parse_simple_value(match.group(1), variables)
        return PercentOfExpr(percent_expr, parse_line(match.group(2), variables, rates))

    match = VARIABLE_OF_REGEX.fullmatch(line)
    if match and match.group(1) in variables:
        percent_expr = VariableExpr(match.group(1))
        return PercentOfExpr(percent_expr, parse_line(match.group(2), variables, rates))

    # "X of what is Y" reads like an inverse solve but applies X% of Y
    match = OF_WHAT_IS_REGEX.fullmatch(line)
    if match:
        percent_expr = parse_simple_value(match.group(1), variables)
        return PercentOfExpr(percent_expr, parse_line(match.group(2), variables, rates))

    return None


def _parse_date_expression(
    line: str, variables: Variables, rates: RateCache | None
) -> Optional[Expr]:
    """``next friday`` or ``next friday + 2 weeks``."""
    match = DATE_OFFSET_REGEX.fullmatch(line)
    if not match:
        return None

    day = match.group(1).lower()
    amount = int(match.group(3)) if match.group(3) else 0
    if match.group(2) == "-":
        amount = -amount
    unit = match.group(4).lower() if match.group(4) else "days"
    return DateOffsetExpr(day, amount, unit)


def _parse_binary_op(
    line: str, variables: Variables, rates: RateCache | None
) -> Optional[Expr]:
    for regex in (ADDITIVE_REGEX, MULTIPLICATIVE_REGEX):
        match = regex.fullmatch(line)
        if match:
            left = parse_line(match.group(1), variables, rates)
            right = parse_line(match.group(3), variables, rates)
            return BinaryOpExpr(left, Op.from_symbol(match.group(2)), right)
    return None


def parse_simple_value(line: str, variables: Variables) -> Expr:
    """Parse a percentage literal, number, number with unit, or variable."""
    line = line.strip()

    if line.endswith("%"):
        percent = parse_number(line[:-1])
        if percent is not None:
            return PercentageExpr(percent)

    number = parse_number(line)
    if number is not None:
        return NumberExpr(number)

    match = UNIT_VALUE_REGEX.fullmatch(line)
    if match:
        return UnitValueExpr(float(match.group(1)), match.group(2))

    # "price USD" tags a bound variable with a currency
    match = VARIABLE_CURRENCY_REGEX.fullmatch(line)
    if match and match.group(1) in variables:
        return BinaryOpExpr(
            VariableExpr(match.group(1)),
            Op.MULTIPLY,
            UnitValueExpr(1.0, match.group(2)),
        )

    if line in variables:
        return VariableExpr(line)

    return ErrorExpr(f"Cannot parse expression: {line}")


GRAMMAR_STAGES: tuple[Callable[[str, Variables, Optional[RateCache]], Optional[Expr]], ...] = (
    _parse_set_rate,
    _parse_assignment,
    _parse_conversion,
    _parse_percentage,
    _parse_date_expression,
    _parse_binary_op,
)
