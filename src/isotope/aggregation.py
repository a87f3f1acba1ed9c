"""
Aggregation — run a list of steps as one step.

Two flavours with different failure policies:

  sequence()  prerequisite steps ("log in" before "open dashboard"):
              stops at the first failure, later steps never run.

  collect()   independent checks on one page: every step runs and the
              failures are reported together, joined with " | ".
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

import structlog

from isotope.computation import Isotope
from isotope.failure import IsotopeError
from isotope.state import EMPTY_LOG, IsotopeState

A = TypeVar("A")

log = structlog.get_logger()


def sequence(computations: Iterable[Isotope[Any, A]]) -> Isotope[Any, list[A]]:
    """
    Run steps strictly in order, threading the state from one to the next.

    Returns the list of values on success. On the first failure returns
    (None, failing state) and the remaining steps are not run.

        sequence([log_in(user), open_dashboard(), check_title("Home")])
    """
    steps = list(computations)

    def run(env: Any, state: IsotopeState) -> tuple[list[A] | None, IsotopeState]:
        values: list[A] = []
        for step in steps:
            value, state = step.run_state(env, state)
            if state.error is not None:
                return None, state
            values.append(value)  # type: ignore[arg-type]
        return values, state

    return Isotope(run)


def collect(computations: Iterable[Isotope[Any, A]]) -> Isotope[Any, list[A | None]]:
    """
    Run every step and aggregate all failures.

    The state is threaded from one step to the next, but its error slot is
    reset before each step so a failing check does not stop the others.
    Values of failed steps are None in the returned list.

    The log is cleared when collecting starts and is empty in the returned
    state; messages still reach the settings' logging_action as they are
    recorded.

        collect([has_text(title, "Basket"), has_text(total, "£12.00")])
    """
    steps = list(computations)

    def run(env: Any, state: IsotopeState) -> tuple[list[A | None], IsotopeState]:
        values: list[A | None] = []
        errors: list[IsotopeError] = []
        state = state.with_(log=EMPTY_LOG)

        for step in steps:
            value, after = step.run_state(env, state)
            if after.error is not None:
                errors.append(after.error)
            values.append(value)
            state = after.with_(error=None)

        if errors:
            log.debug("isotope.collect.failed", failures=len(errors), steps=len(steps))
        error = IsotopeError.aggregate(errors) if errors else None
        return values, state.with_(error=error, log=EMPTY_LOG)

    return Isotope(run)
