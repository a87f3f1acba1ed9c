"""
Step log — record what a test did, grouped by labelled contexts.

Every recorded message is also handed to the settings' logging_action as
it happens, so a live sink sees progress even for steps whose log entries
are later discarded.
"""

from __future__ import annotations

from typing import Any, TypeVar

from isotope.computation import Isotope
from isotope.state import IsotopeState

A = TypeVar("A")


def log(message: str) -> Isotope[Any, None]:
    """Record a flat message."""
    return Isotope(lambda env, state: (None, state.write(message)))


def push_log(message: str) -> Isotope[Any, None]:
    """Record a message and open a nested context under it."""
    return Isotope(lambda env, state: (None, state.push_log(message)))


def pop_log() -> Isotope[Any, None]:
    """Close the innermost open context."""
    return Isotope(lambda env, state: (None, state.pop_log()))


def context(label: str, computation: Isotope[Any, A]) -> Isotope[Any, A]:
    """
    Run `computation` inside a labelled log context.

    The context is closed whether or not the computation fails, so the log
    of a failed run stays balanced for post-mortem reading.

        context("Checkout", sequence([add_to_basket(sku), pay(card)]))
    """

    def run(env: Any, state: IsotopeState) -> tuple[A | None, IsotopeState]:
        value, after = computation.run_state(env, state.push_log(label))
        after = after.pop_log()
        if after.error is not None:
            return None, after
        return value, after

    return Isotope(run)
