"""
Test assertions for run results.

Expressive checks over the (state, value) pair returned by run(), with
failure messages that include the step log.

    def test_login_shows_dashboard(driver):
        outcome = run(log_in("alice", "secret"), env=None, driver=driver)
        title = IsotopeAssertions.assert_success(outcome)
        assert title == "Dashboard"
"""

from __future__ import annotations

from typing import Any, TypeVar

from isotope.failure import ErrorKind, IsotopeError
from isotope.state import IsotopeState

T = TypeVar("T")


class IsotopeAssertions:
    """Assertions over (IsotopeState, value) pairs."""

    @staticmethod
    def assert_success(outcome: tuple[IsotopeState, T | None], message: str = "") -> T | None:
        """
        Assert the run left no error and return its value.

            value = IsotopeAssertions.assert_success(run(step, env))
        """
        state, value = outcome
        context = f" — {message}" if message else ""
        assert state.error is None, (
            f"Expected success but got {state.error.kind.value}: {state.error.message!r}{context}\n"
            f"{state.log.render()}"
        )
        return value

    @staticmethod
    def assert_failure(
        outcome: tuple[IsotopeState, Any],
        expected_kind: ErrorKind | None = None,
        message: str = "",
    ) -> IsotopeError:
        """
        Assert the run failed, optionally with a given error kind.

            error = IsotopeAssertions.assert_failure(outcome, ErrorKind.TIMEOUT)
        """
        state, value = outcome
        context = f" — {message}" if message else ""
        assert state.error is not None, f"Expected failure but got success ({value!r}){context}"
        if expected_kind is not None:
            assert state.error.kind == expected_kind, (
                f"Expected error kind {expected_kind.value} "
                f"but got {state.error.kind.value}: {state.error.message!r}{context}"
            )
        return state.error

    @staticmethod
    def assert_failure_message_equals(outcome: tuple[IsotopeState, Any], expected_message: str) -> None:
        error = IsotopeAssertions.assert_failure(outcome)
        assert error.message == expected_message, (
            f"Expected failure message {expected_message!r} but got {error.message!r}"
        )

    @staticmethod
    def assert_failure_message_contains(outcome: tuple[IsotopeState, Any], substring: str) -> None:
        """Case-insensitive substring check on the failure message."""
        error = IsotopeAssertions.assert_failure(outcome)
        assert substring.lower() in error.message.lower(), (
            f"Expected failure message to contain {substring!r} but message was: {error.message!r}"
        )

    @staticmethod
    def assert_log_messages(state: IsotopeState, expected: list[str]) -> None:
        """Assert the top-level log messages, in order."""
        actual = [entry.message for entry in state.log]
        assert actual == expected, f"Expected log {expected!r} but got {actual!r}"
