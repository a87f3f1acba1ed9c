"""
Run entry points — the boundary between test code and the computation core.

  run()                     returns (state, value); the caller inspects state.error
  run_and_throw_on_error()  same, then reports and raises IsotopeFailure on error

Both build a fresh state, run the computation once and, when the settings
ask for it, dispose of the driver exactly once whether the run passed or
failed.
"""

from __future__ import annotations

import time
from typing import TypeVar

import structlog

from isotope.computation import Isotope
from isotope.driver import WebDriver
from isotope.failure import IsotopeError, IsotopeFailure
from isotope.logconfig import run_scope
from isotope.settings import IsotopeSettings
from isotope.state import IsotopeState

E = TypeVar("E")
A = TypeVar("A")

log = structlog.get_logger()


def _dispose(state: IsotopeState) -> IsotopeState:
    try:
        return state.dispose_driver()
    except Exception as e:
        log.warning("isotope.run.dispose_failed", error=str(e))
        if state.error is not None:
            return state.with_(driver=None)
        return state.with_(
            driver=None,
            error=IsotopeError.from_exception(f"Failed to dispose web-driver: {e}", e),
        )


def run(
    computation: Isotope[E, A],
    env: E,
    driver: WebDriver | None = None,
    settings: IsotopeSettings | None = None,
    run_id: str | None = None,
) -> tuple[IsotopeState, A | None]:
    """
    Run a test computation and return its final state and value.

    The run passed when `state.error is None`. Never raises: an exception
    escaping user code inside the computation is recorded as an
    EXCEPTION-kind error on the initial state. Every structlog event of the
    run carries `run_id` (generated when not given).

        state, title = run(check_title, env=fixture, driver=driver)
        assert state.error is None, state.log.render()
    """
    with run_scope(run_id):
        initial = IsotopeState.empty(driver=driver, settings=settings)
        log.debug("isotope.run.started", has_driver=driver is not None)
        start = time.monotonic()

        try:
            value, final = computation.run_state(env, initial)
        except Exception as e:
            log.error("isotope.run.crashed", error=str(e), exc_info=True)
            value, final = None, initial.with_(error=IsotopeError.from_exception(f"Run failed: {e}", e))

        if final.settings.dispose_on_completion:
            final = _dispose(final)

        elapsed = time.monotonic() - start
        log.info(
            "isotope.run.completed",
            outcome="FAILURE" if final.error is not None else "SUCCESS",
            elapsed=round(elapsed, 3),
            error=str(final.error) if final.error is not None else None,
        )
    return final, value


def run_and_throw_on_error(
    computation: Isotope[E, A],
    env: E,
    driver: WebDriver | None = None,
    settings: IsotopeSettings | None = None,
    run_id: str | None = None,
) -> tuple[IsotopeState, A | None]:
    """
    Run a test computation and raise IsotopeFailure if it failed.

    The driver is disposed first (when configured), then the settings'
    failure_action receives the error message and the log, then the
    exception is raised.
    """
    with run_scope(run_id) as scoped_id:
        state, value = run(computation, env, driver=driver, settings=settings, run_id=scoped_id)
        if state.error is not None:
            state.settings.failure_action(state.error.message, state.log)
            raise IsotopeFailure(state.error, state.log)
    return state, value
