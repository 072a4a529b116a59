"""Runtime value types, result dataclasses and exceptions.

Every line evaluates to exactly one of the ``Value`` variants below. Errors
are values too: a failed line produces an ``Error`` rather than raising, so
one bad line never aborts the rest of a document.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Number:
    """A dimensionless scalar."""

    value: float


@dataclass(frozen=True)
class Percentage:
    """An ``X%`` literal that has not been applied yet (stored in percent units)."""

    value: float


@dataclass(frozen=True)
class Unit:
    """A scalar tagged with a physical unit or a 3-letter currency code."""

    value: float
    unit: str


@dataclass(frozen=True)
class Date:
    """A calendar day without time of day."""

    value: datetime.date


@dataclass(frozen=True)
class Error:
    """A failed computation."""

    message: str


@dataclass(frozen=True)
class Assignment:
    """Transient wrapper telling the caller to bind ``name`` to ``value``.

    The wrapper itself is never stored in a variable environment.
    """

    name: str
    value: Value


Value = Union[Number, Percentage, Unit, Date, Error, Assignment]


def unwrap(value: Value) -> Value:
    """Strip any Assignment wrappers, returning the value that gets stored."""
    while isinstance(value, Assignment):
        value = value.value
    return value


@dataclass
class EvalResult:
    """Result of evaluating a single calculator line."""

    ok: bool
    result: str | None = None
    value: Value | None = None
    assigned: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result_dict: dict[str, Any] = {"ok": self.ok}
        if self.result is not None:
            result_dict["result"] = self.result
        if self.assigned is not None:
            result_dict["assigned"] = self.assigned
        if self.error is not None:
            result_dict["error"] = self.error
        return result_dict

    def __repr__(self) -> str:
        """Return string representation of the result."""
        if not self.ok:
            return f"EvalResult(ok=False, error={self.error!r})"
        parts = [f"ok={self.ok}"]
        if self.result is not None:
            parts.append(f"result={self.result!r}")
        if self.assigned is not None:
            parts.append(f"assigned={self.assigned!r}")
        return f"EvalResult({', '.join(parts)})"


class DocumentError(Exception):
    """Raised when an edit addresses a line or column outside the document."""

    def __init__(self, message: str, code: str = "INVALID_POSITION"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class CurrencyError(Exception):
    """Raised when an exchange-rate source returns unusable data."""

    def __init__(self, message: str, code: str = "RATE_SOURCE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message
