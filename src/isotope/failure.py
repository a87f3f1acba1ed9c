"""
Failure description — the error value carried in IsotopeState.

A step never raises to report failure. It stores an IsotopeError in the
state and every following step passes it through untouched.

Enum + frozen dataclass give us __eq__, __hash__ and __repr__ for free,
and Enum members are singleton-comparable with `is`.
"""

from __future__ import annotations

import traceback
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorKind(Enum):
    """
    Taxonomy of failures a test step can report.

    The kind is informational only: failure sinks receive the rendered
    message, so two errors with the same message read identically.
    """

    NOT_FOUND = "NOT_FOUND"
    """An expected element or value was absent after searching/retrying."""

    TIMEOUT = "TIMEOUT"
    """A wait_until deadline elapsed before its condition was satisfied."""

    EXCEPTION = "EXCEPTION"
    """A driver call raised; the exception was converted to a message."""

    AGGREGATED = "AGGREGATED"
    """Several independent failures joined by collect()."""

    EXPLICIT = "EXPLICIT"
    """A caller-issued fail(message)."""


AGGREGATE_SEPARATOR = " | "


@dataclass(frozen=True, slots=True)
class IsotopeError:
    """
    Immutable failure descriptor: kind, message, optional exception and causes.

    >>> err = IsotopeError(ErrorKind.EXPLICIT, "Login button missing")
    >>> str(err)
    'Login button missing'
    """

    kind: ErrorKind
    message: str
    exception: BaseException | None = field(default=None, repr=False, compare=False)
    causes: tuple[IsotopeError, ...] = field(default=(), repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC), compare=False)

    def __str__(self) -> str:
        return self.message

    @staticmethod
    def explicit(message: str) -> IsotopeError:
        return IsotopeError(ErrorKind.EXPLICIT, message)

    @staticmethod
    def not_found(message: str) -> IsotopeError:
        return IsotopeError(ErrorKind.NOT_FOUND, message)

    @staticmethod
    def timeout(message: str = "Timed Out") -> IsotopeError:
        return IsotopeError(ErrorKind.TIMEOUT, message)

    @staticmethod
    def from_exception(message: str, exception: BaseException) -> IsotopeError:
        return IsotopeError(ErrorKind.EXCEPTION, message, exception=exception)

    @staticmethod
    def aggregate(errors: Iterable[IsotopeError]) -> IsotopeError:
        """
        Join independent failures into one error, in execution order.

        The message is the plain " | "-joined rendering that external
        failure sinks expect; the original errors stay available in `causes`.
        """
        causes = tuple(errors)
        if not causes:
            raise ValueError("At least one error is required to aggregate")
        message = AGGREGATE_SEPARATOR.join(err.message for err in causes)
        return IsotopeError(ErrorKind.AGGREGATED, message, causes=causes)

    def full_stack_trace(self) -> str:
        """Message followed by the formatted exception chain, if any."""
        if self.exception is None:
            return self.message
        tb = "".join(
            traceback.format_exception(type(self.exception), self.exception, self.exception.__traceback__)
        )
        return f"{self.message}\n{tb}"


class IsotopeFailure(Exception):
    """
    Raised by run_and_throw_on_error when the final state carries an error.

    This is the only exception the library raises on purpose; inside a
    computation chain failures always travel in the state.
    """

    def __init__(self, error: IsotopeError, log: object) -> None:
        super().__init__(error.message)
        self.error = error
        self.log = log

    @property
    def message(self) -> str:
        return self.error.message
