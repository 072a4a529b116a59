"""Reactive document: incremental re-evaluation of calculator lines.

The document owns the text lines, the variable environment and two result
projections kept index-aligned with the lines:

- ``debounced_results``: the full result text, errors included
- ``results``: the live projection; error text is blanked while the user is
  still typing (inside the debounce window) and surfaces on a later
  ``tick()``

Edits only mark lines dirty. ``evaluate()`` then recomputes the dirty lines
and every line whose text mentions a variable whose value changed. The
mention check is a plain substring test, so a line using ``tax`` is also
recomputed when ``x`` changes.
"""

from __future__ import annotations

import time
from typing import Callable, Iterable, Optional

from .config import DEBOUNCE_SECONDS, STATUS_MESSAGE_SECONDS, TICK_SECONDS
from .currency import RateCache, get_default_cache
from .evaluator import Today, evaluate_line
from .formatting import format_value, is_error_text
from .logging_config import get_logger
from .parser import is_blank_or_comment
from .types import Assignment, DocumentError, Value, unwrap
from .units import is_currency

logger = get_logger("engine")


class Document:
    """An editable calculator document with incremental evaluation.

    Args:
        rates: Exchange-rate cache (process default if None)
        clock: Monotonic time source in seconds
        debounce_seconds: How long error text stays hidden after a keystroke
        status_seconds: How long a status message stays visible
        today: Callable returning the current date for ``next <weekday>`` lines
        tick_seconds: How often the front end should call ``tick()``
    """

    def __init__(
        self,
        rates: RateCache | None = None,
        clock: Callable[[], float] = time.monotonic,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        status_seconds: float = STATUS_MESSAGE_SECONDS,
        today: Optional[Today] = None,
        tick_seconds: float = TICK_SECONDS,
    ):
        self._rates = rates
        self._clock = clock
        self._debounce_seconds = debounce_seconds
        self._status_seconds = status_seconds
        self._tick_seconds = tick_seconds
        self._today = today

        self.lines: list[str] = [""]
        self.results: list[str] = [""]
        self.debounced_results: list[str] = [""]
        self.variables: dict[str, Value] = {}

        self._dirty: set[int] = set()
        self._snapshot: dict[str, Value] = {}
        self._last_keystroke = float("-inf")

        self.status_message: str | None = None
        self._status_set_at = 0.0

    # ------------------------------------------------------------------
    # Accessors

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def tick_seconds(self) -> float:
        """Polling period for ``tick()``; well below the debounce window."""
        return self._tick_seconds

    @property
    def dirty_lines(self) -> frozenset[int]:
        return frozenset(self._dirty)

    def result(self, row: int, live: bool = True) -> str:
        """Result text for ``row`` from the live or the debounced projection."""
        self._check_row(row)
        return self.results[row] if live else self.debounced_results[row]

    def in_debounce_window(self) -> bool:
        return self._clock() - self._last_keystroke < self._debounce_seconds

    def set_status(self, message: str) -> None:
        self.status_message = message
        self._status_set_at = self._clock()

    # ------------------------------------------------------------------
    # Mutators

    def _check_row(self, row: int) -> None:
        if not 0 <= row < len(self.lines):
            raise DocumentError(f"Line {row} is outside the document (0..{len(self.lines) - 1})")

    def _check_col(self, row: int, col: int) -> None:
        self._check_row(row)
        if not 0 <= col <= len(self.lines[row]):
            raise DocumentError(f"Column {col} is outside line {row}")

    def _touch(self) -> None:
        self._last_keystroke = self._clock()

    def _mark(self, *rows: int) -> None:
        for row in rows:
            if 0 <= row < len(self.lines):
                self._dirty.add(row)

    def _shift_dirty(self, start: int, delta: int) -> None:
        """Move dirty indices at or after ``start`` by ``delta``."""
        self._dirty = {row + delta if row >= start else row for row in self._dirty}

    def insert_text(self, row: int, col: int, text: str) -> tuple[int, int]:
        self._check_col(row, col)
        line = self.lines[row]
        self.lines[row] = line[:col] + text + line[col:]
        self._touch()
        self._mark(row)
        return row, col + len(text)

    def insert_char(self, row: int, col: int, char: str) -> tuple[int, int]:
        """Insert a character at ``col``; returns the cursor position after it."""
        return self.insert_text(row, col, char)

    def delete_char(self, row: int, col: int) -> tuple[int, int]:
        """Backspace: delete the character before ``col``, joining lines at column 0."""
        self._check_col(row, col)
        if col == 0:
            if row == 0:
                return row, col
            return self.join_with_previous(row)

        line = self.lines[row]
        self.lines[row] = line[: col - 1] + line[col:]
        self._touch()
        self._mark(row)
        return row, col - 1

    def delete_forward(self, row: int, col: int) -> tuple[int, int]:
        """Delete the character at ``col``, joining with the next line at end of line."""
        self._check_col(row, col)
        line = self.lines[row]
        if col == len(line):
            if row < len(self.lines) - 1:
                self.join_with_next(row)
            return row, col

        self.lines[row] = line[:col] + line[col + 1 :]
        self._touch()
        self._mark(row)
        return row, col

    def set_line(self, row: int, text: str) -> None:
        self._check_row(row)
        self.lines[row] = text
        self._touch()
        self._mark(row)

    def split_line(self, row: int, col: int) -> tuple[int, int]:
        """Break ``row`` at ``col``; the tail becomes a new line below it."""
        self._check_col(row, col)
        line = self.lines[row]
        self.lines[row] = line[:col]
        self.lines.insert(row + 1, line[col:])
        self.results.insert(row + 1, "")
        self.debounced_results.insert(row + 1, "")
        self._shift_dirty(row + 1, 1)
        self._touch()
        self._mark(row, row + 1)
        return row + 1, 0

    def join_with_next(self, row: int) -> tuple[int, int]:
        """Append line ``row + 1`` to ``row`` and remove it."""
        self._check_row(row)
        if row >= len(self.lines) - 1:
            return row, len(self.lines[row])

        joint = len(self.lines[row])
        self.lines[row] += self.lines.pop(row + 1)
        self.results.pop(row + 1)
        self.debounced_results.pop(row + 1)
        self._dirty.discard(row + 1)
        self._shift_dirty(row + 2, -1)
        self._touch()
        self._mark(row, row + 1)
        return row, joint

    def join_with_previous(self, row: int) -> tuple[int, int]:
        self._check_row(row)
        if row == 0:
            return row, 0
        return self.join_with_next(row - 1)

    def insert_line(self, row: int, text: str = "") -> None:
        """Insert a new line before ``row`` (``row == line_count`` appends)."""
        if not 0 <= row <= len(self.lines):
            raise DocumentError(f"Line {row} is outside the document (0..{len(self.lines)})")
        self.lines.insert(row, text)
        self.results.insert(row, "")
        self.debounced_results.insert(row, "")
        self._shift_dirty(row, 1)
        self._touch()
        self._mark(row)

    def delete_line(self, row: int) -> None:
        """Remove ``row``; the last remaining line is cleared instead."""
        self._check_row(row)
        if len(self.lines) == 1:
            self.lines[0] = ""
            self.results[0] = ""
            self.debounced_results[0] = ""
            self._touch()
            self._mark(0)
            return

        self.lines.pop(row)
        self.results.pop(row)
        self.debounced_results.pop(row)
        self._dirty.discard(row)
        self._shift_dirty(row + 1, -1)
        self._touch()
        self._mark(row)

    # ------------------------------------------------------------------
    # Evaluation

    def _recompute(self, row: int) -> None:
        value = evaluate_line(self.lines[row], self.variables, self._rates, self._today)
        if isinstance(value, Assignment):
            self.variables[value.name] = unwrap(value)
        self.debounced_results[row] = format_value(value)

    def _changed_since(self, snapshot: dict[str, Value]) -> set[str]:
        return {
            name
            for name, value in self.variables.items()
            if name not in snapshot or snapshot[name] != value
        }

    def evaluate(self) -> set[int]:
        """Recompute dirty lines and lines that mention changed variables.

        Dirty lines are evaluated in ascending order, so an assignment is
        visible to later dirty lines of the same pass. Every line whose text
        contains the name of a variable that changed is then evaluated
        again; if that changes further variables, their dependents follow,
        with each line recomputed at most once by this propagation.

        Returns:
            Indices of the lines that were recomputed
        """
        if not self._dirty:
            return set()

        self._snapshot = dict(self.variables)
        recomputed = set()
        for row in sorted(self._dirty):
            if row >= len(self.lines) or is_blank_or_comment(self.lines[row]):
                continue
            self._recompute(row)
            recomputed.add(row)

        changed = self._changed_since(self._snapshot)
        if changed:
            logger.debug(f"Variables changed: {sorted(changed)}")

        propagated: set[int] = set()
        while changed:
            round_start = dict(self.variables)
            for row, line in enumerate(self.lines):
                if row in propagated or is_blank_or_comment(line):
                    continue
                if any(name in line for name in changed):
                    self._recompute(row)
                    propagated.add(row)
            changed = self._changed_since(round_start)

        self._dirty.clear()
        self._snapshot = dict(self.variables)
        self._project_live()
        return recomputed | propagated

    def _project_live(self) -> None:
        if self.in_debounce_window():
            self.results = ["" if is_error_text(text) else text for text in self.debounced_results]
        else:
            self.results = list(self.debounced_results)

    def tick(self) -> bool:
        """Periodic update: surface pending errors and expire the status message.

        Returns:
            True if anything visible changed
        """
        changed = False
        now = self._clock()

        if now - self._last_keystroke >= self._debounce_seconds and self.results != self.debounced_results:
            self.results = list(self.debounced_results)
            changed = True

        if self.status_message is not None and now - self._status_set_at >= self._status_seconds:
            self.status_message = None
            changed = True

        return changed

    # ------------------------------------------------------------------
    # Bulk operations

    def load_lines(self, lines: Iterable[str]) -> None:
        """Replace the whole document, clear variables and evaluate every line."""
        self.lines = [line.rstrip("\r\n") for line in lines] or [""]
        self.results = [""] * len(self.lines)
        self.debounced_results = [""] * len(self.lines)
        self.variables = {}
        self._snapshot = {}
        self._last_keystroke = float("-inf")
        self._dirty = set(range(len(self.lines)))
        self.evaluate()
        self.set_status(f"Loaded {len(self.lines)} lines")
        logger.info(f"Loaded document with {len(self.lines)} lines")

    def load_text(self, text: str) -> None:
        self.load_lines(text.splitlines())

    def to_text(self) -> str:
        """Serialize the expression lines (results are never saved)."""
        return "\n".join(self.lines)

    def set_exchange_rate(self, from_currency: str, to_currency: str, rate: float) -> bool:
        """Install a manual exchange rate and recompute lines that mention either currency.

        Returns:
            False when a code is not currency-shaped or the rate is not positive
        """
        from_currency = from_currency.strip().upper()
        to_currency = to_currency.strip().upper()
        if not (is_currency(from_currency) and is_currency(to_currency)):
            return False

        cache = self._rates if self._rates is not None else get_default_cache()
        if not cache.set_exchange_rate(from_currency, to_currency, rate):
            return False

        for row, line in enumerate(self.lines):
            upper = line.upper()
            if from_currency in upper or to_currency in upper:
                self._mark(row)
        self.evaluate()
        self.set_status(f"Set rate {from_currency} to {to_currency} = {rate}")
        return True
