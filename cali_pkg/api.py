"""Public API for Cali - returns structured objects and never touches the caller's variables."""

from __future__ import annotations

from typing import Mapping

from .currency import RateCache, get_default_cache
from .evaluator import evaluate_line
from .expressions import ErrorExpr
from .formatting import format_value
from .logging_config import get_logger, setup_logging
from .parser import parse_line
from .types import Assignment, EvalResult, Error, Value, unwrap
from .units import is_currency

logger = get_logger("api")


def evaluate(
    expression: str,
    variables: Mapping[str, Value] | None = None,
    rates: RateCache | None = None,
) -> EvalResult:
    """Evaluate a single calculator line.

    The caller's ``variables`` are read but never modified; an assignment is
    reported through ``EvalResult.assigned`` and ``EvalResult.value``.

    Args:
        expression: Line text (e.g., "20% of 50", "10 USD in EUR")
        variables: Optional bound variables
        rates: Exchange-rate cache (process default if None)

    Returns:
        EvalResult with the formatted result and the typed value

    Example:
        >>> from cali_pkg.api import evaluate
        >>> evaluate("20% of 50").result
        '10'
    """
    scope = dict(variables or {})
    value = evaluate_line(expression, scope, rates)

    assigned = value.name if isinstance(value, Assignment) else None
    stored = unwrap(value)
    if isinstance(stored, Error):
        return EvalResult(ok=False, value=stored, assigned=assigned, error=stored.message)
    return EvalResult(ok=True, result=format_value(value), value=stored, assigned=assigned)


def validate_expression(
    expression: str, variables: Mapping[str, Value] | None = None
) -> tuple[bool, str | None]:
    """Check that a line parses, without evaluating it.

    ``setrate`` lines are parsed against a throwaway rate cache so that
    validation never installs a rate.

    Example:
        >>> validate_expression("10 kg in lb")
        (True, None)
        >>> validate_expression("10 +")
        (False, 'Cannot parse expression: 10 +')
    """
    scratch = RateCache(fetcher=dict, refresh_on_start=False)
    expr = parse_line(expression, dict(variables or {}), scratch)
    error = _first_error(expr)
    if error is not None:
        return False, error
    return True, None


def _first_error(expr) -> str | None:
    if isinstance(expr, ErrorExpr):
        return expr.message
    for child in vars(expr).values():
        if hasattr(child, "__dataclass_fields__"):
            message = _first_error(child)
            if message is not None:
                return message
    return None


def set_exchange_rate(
    from_currency: str, to_currency: str, rate: float, rates: RateCache | None = None
) -> bool:
    """Install a manual exchange rate (and its reciprocal).

    Returns:
        False if a code is not a 3-letter currency code or the rate is not positive
    """
    from_currency = from_currency.strip().upper()
    to_currency = to_currency.strip().upper()
    if not (is_currency(from_currency) and is_currency(to_currency)):
        logger.warning(f"Rejected exchange rate for {from_currency!r} -> {to_currency!r}")
        return False

    cache = rates if rates is not None else get_default_cache()
    return cache.set_exchange_rate(from_currency, to_currency, rate)
