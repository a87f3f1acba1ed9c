"""
Isotope — the state/reader/error computation at the core of the library.

An Isotope[Env, A] wraps a function (env, state) -> (value, state). Running
it threads the test state through a chain of steps; a failure is stored in
the state and every later step passes it through without doing any work.

    ┌───────────┐    bind     ┌───────────┐    bind     ┌──────────┐
    │ open page │──no error───│  log in   │──no error───│  assert  │──→ (value, state)
    └─────┬─────┘             └─────┬─────┘             └─────┬────┘
          │ state.error             │ state.error             │ state.error
          └─────────────────────────┴─────────────────────────┴──→ (None, state)

Computations are immutable values: composing them builds new Isotopes and
the same Isotope can be run any number of times.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from typing import Any, Generic, TypeVar

from isotope.failure import ErrorKind, IsotopeError
from isotope.state import IsotopeState

E = TypeVar("E")
A = TypeVar("A")
B = TypeVar("B")
C = TypeVar("C")


class Isotope(Generic[E, A]):
    """
    A deferred, possibly-failing, state-transforming test step.

    Two rules hold for every Isotope built by this library:
      - invoked with a state that already carries an error, it does no
        work and returns (None, state) unchanged
      - bind() never runs its continuation once the first step failed

    Usage:
        >>> step = pure(20).map(lambda x: x + 1).bind(lambda x: pure(x * 2))
        >>> value, state = step.run_state(None, IsotopeState.empty())
        >>> value
        42
    """

    __slots__ = ("_fn", "_short_circuit")

    def __init__(
        self,
        fn: Callable[[E, IsotopeState], tuple[A | None, IsotopeState]],
        *,
        short_circuit: bool = True,
    ) -> None:
        self._fn = fn
        self._short_circuit = short_circuit

    # ──────────────────────── Running ────────────────────────

    def run_state(self, env: E, state: IsotopeState) -> tuple[A | None, IsotopeState]:
        """Invoke the step against an environment and a state."""
        if self._short_circuit and state.error is not None:
            return None, state
        return self._fn(env, state)

    def __call__(self, env: E, state: IsotopeState) -> tuple[A | None, IsotopeState]:
        return self.run_state(env, state)

    # ──────────────────────── Core Transformations ────────────────────────

    def map(self, mapper: Callable[[A], B]) -> Isotope[E, B]:
        """
        Transform the success value. The mapper is not invoked on failure.

            text(element).map(str.strip)
        """

        def run(env: E, state: IsotopeState) -> tuple[B | None, IsotopeState]:
            value, after = self.run_state(env, state)
            if after.error is not None:
                return None, after
            return mapper(value), after  # type: ignore[arg-type]

        return Isotope(run)

    def bind(self, binder: Callable[[A], Isotope[E, B]]) -> Isotope[E, B]:
        """
        Chain a step that depends on this step's value.

        This is the operator that connects test steps: the continuation
        only runs when this step left the state error-free.

            find_element(By.css("#user")).bind(lambda el: send_keys(el, "alice"))
        """

        def run(env: E, state: IsotopeState) -> tuple[B | None, IsotopeState]:
            value, after = self.run_state(env, state)
            if after.error is not None:
                return None, after
            return binder(value).run_state(env, after)  # type: ignore[arg-type]

        return Isotope(run)

    def bind_project(
        self,
        binder: Callable[[A], Isotope[E, B]],
        projector: Callable[[A, B], C],
    ) -> Isotope[E, C]:
        """
        bind() followed by a projection that sees both values.

            find_element(sel).bind_project(text, lambda el, txt: (el.tag_name, txt))
        """

        def run(env: E, state: IsotopeState) -> tuple[C | None, IsotopeState]:
            a, after_a = self.run_state(env, state)
            if after_a.error is not None:
                return None, after_a
            b, after_b = binder(a).run_state(env, after_a)  # type: ignore[arg-type]
            if after_b.error is not None:
                return None, after_b
            return projector(a, b), after_b  # type: ignore[arg-type]

        return Isotope(run)

    def then(self, other: Isotope[E, B] | Callable[[], Isotope[E, B]]) -> Isotope[E, B]:
        """
        Run `other` after this step, discarding this step's value.

        `other` may be a zero-argument callable, so the next step is only
        built once this one has succeeded.
        """
        if isinstance(other, Isotope):
            return self.bind(lambda _: other)
        return self.bind(lambda _: other())

    def __rshift__(self, other: Isotope[E, B]) -> Isotope[E, B]:
        """`nav(url) >> click(button)` is `nav(url).then(click(button))`."""
        return self.then(other)

    def __repr__(self) -> str:
        name = getattr(self._fn, "__qualname__", type(self._fn).__name__)
        return f"Isotope({name})"


# ──────────────────────── Static Factories ────────────────────────


def pure(value: A) -> Isotope[Any, A]:
    """Lift a value into a step that always succeeds."""
    return Isotope(lambda env, state: (value, state))


def unit() -> Isotope[Any, None]:
    """A step that succeeds with no value; handy as the head of a chain."""
    return pure(None)


def fail(message: str | IsotopeError, kind: ErrorKind = ErrorKind.EXPLICIT) -> Isotope[Any, Any]:
    """
    A step that always fails. The existing log is kept.

        fail("Basket total is wrong")
        fail("No rows in results table", ErrorKind.NOT_FOUND)
    """
    error = message if isinstance(message, IsotopeError) else IsotopeError(kind, message)
    return Isotope(lambda env, state: (None, state.with_(error=error)))


def get() -> Isotope[Any, IsotopeState]:
    """Return the current state as the value, errors included."""
    return Isotope(lambda env, state: (state, state), short_circuit=False)


def put(new_state: IsotopeState) -> Isotope[Any, None]:
    """Replace the current state wholesale. This is the only way to clear an error."""
    return Isotope(lambda env, state: (None, new_state), short_circuit=False)


def modify(update: Callable[[IsotopeState], IsotopeState]) -> Isotope[Any, None]:
    """Replace the current state with a function of itself."""
    return Isotope(lambda env, state: (None, update(state)))


def ask() -> Isotope[E, E]:
    """Return the environment."""
    return Isotope(lambda env, state: (env, state))


def asks(selector: Callable[[E], A]) -> Isotope[E, A]:
    """
    Return a function of the environment.

        asks(lambda fixture: fixture.base_url).bind(nav)
    """
    return ask().map(selector)


# ──────────────────────── Lifting ────────────────────────


def from_optional(value: A | None, label: str) -> Isotope[Any, A]:
    """Succeed with `value`, or fail as NOT_FOUND with `label` when it is None."""
    if value is None:
        return fail(label, ErrorKind.NOT_FOUND)
    return pure(value)


def _describe(label: str | Callable[[Exception], str], exc: Exception) -> str:
    if callable(label):
        return label(exc)
    return f"{label}\nDetails: {exc}"


def try_f(func: Callable[[], A], label: str | Callable[[Exception], str]) -> Isotope[Any, A]:
    """
    Run a function that may raise, converting an exception into a failure.

    `label` is either a message (the exception text is appended as
    details) or a function building the message from the exception.

        try_f(lambda: element.text, "Error getting text from element")
    """

    def run(env: Any, state: IsotopeState) -> tuple[A | None, IsotopeState]:
        try:
            return func(), state
        except Exception as e:
            return None, state.with_(error=IsotopeError.from_exception(_describe(label, e), e))

    return Isotope(run)


def try_a(action: Callable[[], Any], label: str | Callable[[Exception], str]) -> Isotope[Any, None]:
    """Like try_f() for an action whose return value is ignored."""
    return try_f(lambda: (action(), None)[1], label)


def void_a(action: Callable[[], Any]) -> Isotope[Any, None]:
    """Run an action for its side effect. Exceptions are not caught."""

    def run(env: Any, state: IsotopeState) -> tuple[None, IsotopeState]:
        action()
        return None, state

    return Isotope(run)


# ──────────────────────── Settings Accessors ────────────────────────


def default_wait() -> Isotope[Any, timedelta]:
    """The settings' default wait_until deadline."""
    return get().map(lambda state: state.settings.wait)


def default_interval() -> Isotope[Any, timedelta]:
    """The settings' default pause between wait_until attempts."""
    return get().map(lambda state: state.settings.interval)
