"""
Retry engine — re-run a step until its value is acceptable.

Built on tenacity: a Retrying loop drives the attempts, so retries never
grow the Python stack. Retrying is value-based: `continue_condition(value)`
returning True means "not yet, try again"; False accepts the value.

A step that fails (error set in the state) is never retried; its failure
ends the loop immediately.

  wait_until()        bounded by wall-clock time; fails with "Timed Out"
  do_while()          bounded by attempts; gives up silently with None
  do_while_or_fail()  bounded by attempts; fails with a caller message

Sleeps are blocking time.sleep() calls and cannot be interrupted.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
    wait_none,
)

from isotope.computation import Isotope
from isotope.failure import ErrorKind, IsotopeError
from isotope.state import IsotopeState

A = TypeVar("A")

log = structlog.get_logger()

# Returned by retry_error_callback when the budget runs out.
_EXHAUSTED = object()

DEFAULT_MAX_REPEATS = 100
DEFAULT_MAX_REPEATS_WITH_INTERVAL = 1000


def _seconds(duration: timedelta | float) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


def _sleep(seconds: float) -> None:
    if seconds > 0:
        time.sleep(seconds)


def _log_retry(event: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        log.debug(
            event,
            attempt=retry_state.attempt_number,
            sleep=getattr(retry_state.next_action, "sleep", None),
            elapsed=round(retry_state.seconds_since_start or 0.0, 3),
        )

    return before_sleep


class _Attempts:
    """
    Threads the state through successive attempts of one step.

    With a `deadline` (seconds from construction), every attempt after the
    first is skipped once the deadline has passed, so an attempt never
    starts late even when a sleep crossed the deadline.
    """

    __slots__ = ("env", "state", "computation", "continue_condition", "started", "deadline", "made")

    def __init__(
        self,
        computation: Isotope[Any, A],
        continue_condition: Callable[[A], bool],
        env: Any,
        state: IsotopeState,
        deadline: float | None = None,
    ) -> None:
        self.computation = computation
        self.continue_condition = continue_condition
        self.env = env
        self.state = state
        self.started = time.monotonic()
        self.deadline = deadline
        self.made = 0

    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() - self.started >= self.deadline

    def attempt(self) -> Any:
        if self.made > 0 and self.expired():
            return _EXHAUSTED
        self.made += 1
        value, self.state = self.computation.run_state(self.env, self.state)
        return value

    def keep_going(self, value: Any) -> bool:
        if value is _EXHAUSTED:
            return False
        return self.state.error is None and self.continue_condition(value)

    def drive(self, retrying: Retrying) -> tuple[Any, bool]:
        """Run the loop; returns (value, exhausted)."""
        value = retrying(self.attempt)
        if value is _EXHAUSTED:
            return None, True
        return value, False


def wait_until(
    computation: Isotope[Any, A],
    continue_condition: Callable[[A], bool],
    interval: timedelta | float | None = None,
    wait: timedelta | float | None = None,
) -> Isotope[Any, A]:
    """
    Poll a step until `continue_condition` turns False or the deadline passes.

    `interval` and `wait` default to the settings' values. Elapsed time is
    measured from one start timestamp taken before the first attempt; the
    first attempt is always made, so a wait of zero means one attempt.
    Later attempts are only made while the deadline has not been reached,
    so a sleep that crosses the deadline ends in a timeout.

        wait_until(find_optional_element(spinner), lambda el: el is not None,
                   interval=timedelta(milliseconds=100), wait=timedelta(seconds=5))
    """

    def run(env: Any, state: IsotopeState) -> tuple[A | None, IsotopeState]:
        resolved_wait = _seconds(wait if wait is not None else state.settings.wait)
        resolved_interval = _seconds(interval if interval is not None else state.settings.interval)
        attempts = _Attempts(computation, continue_condition, env, state, deadline=resolved_wait)

        value, exhausted = attempts.drive(
            Retrying(
                stop=stop_after_delay(resolved_wait),
                wait=wait_fixed(resolved_interval),
                retry=retry_if_result(attempts.keep_going),
                retry_error_callback=lambda retry_state: _EXHAUSTED,
                before_sleep=_log_retry("isotope.wait_until.retrying"),
                sleep=_sleep,
            )
        )
        if exhausted:
            log.debug("isotope.wait_until.timed_out", wait=resolved_wait, attempts=attempts.made)
            return None, attempts.state.with_(error=IsotopeError.timeout())
        if attempts.state.error is not None:
            return None, attempts.state
        return value, attempts.state

    return Isotope(run)


def _repeat(
    computation: Isotope[Any, A],
    continue_condition: Callable[[A], bool],
    max_repeats: int,
    interval: timedelta | float | None,
    on_exhausted: Callable[[IsotopeState], IsotopeState],
) -> Isotope[Any, A]:
    def run(env: Any, state: IsotopeState) -> tuple[A | None, IsotopeState]:
        if max_repeats <= 0:
            return None, on_exhausted(state)
        attempts = _Attempts(computation, continue_condition, env, state)

        value, exhausted = attempts.drive(
            Retrying(
                stop=stop_after_attempt(max_repeats),
                wait=wait_fixed(_seconds(interval)) if interval is not None else wait_none(),
                retry=retry_if_result(attempts.keep_going),
                retry_error_callback=lambda retry_state: _EXHAUSTED,
                before_sleep=_log_retry("isotope.do_while.retrying"),
                sleep=_sleep,
            )
        )
        if exhausted:
            return None, on_exhausted(attempts.state)
        if attempts.state.error is not None:
            return None, attempts.state
        return value, attempts.state

    return Isotope(run)


def do_while(
    computation: Isotope[Any, A],
    continue_condition: Callable[[A], bool],
    max_repeats: int = DEFAULT_MAX_REPEATS,
) -> Isotope[Any, A]:
    """
    Repeat a step while `continue_condition` holds, at most `max_repeats` times.

    Running out of attempts is NOT a failure: the result is None with the
    state left error-free. Follow with an explicit check when the outcome
    matters, or use do_while_or_fail().
    """
    return _repeat(computation, continue_condition, max_repeats, None, lambda state: state)


def do_while_or_fail(
    computation: Isotope[Any, A],
    continue_condition: Callable[[A], bool],
    failure_message: str,
    max_repeats: int | None = None,
    interval: timedelta | float | None = None,
) -> Isotope[Any, A]:
    """
    Like do_while(), but running out of attempts fails with `failure_message`.

    With an `interval` the loop sleeps between attempts. `max_repeats`
    defaults to 100, or 1000 when an interval is given.
    """
    if max_repeats is None:
        max_repeats = DEFAULT_MAX_REPEATS if interval is None else DEFAULT_MAX_REPEATS_WITH_INTERVAL
    error = IsotopeError(ErrorKind.EXPLICIT, failure_message)
    return _repeat(
        computation,
        continue_condition,
        max_repeats,
        interval,
        lambda state: state.with_(error=error),
    )


def pause(interval: timedelta | float) -> Isotope[Any, None]:
    """
    Block for `interval`. Only use as a last resort: prefer wait_until().
    """

    def run(env: Any, state: IsotopeState) -> tuple[None, IsotopeState]:
        _sleep(_seconds(interval))
        return None, state

    return Isotope(run)
