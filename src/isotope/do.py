"""
Do-notation for Isotope computations using Python generators.

Long bind() chains read poorly in Python. The @do decorator lets a test
step be written as a generator that yields Isotopes and receives their
values back, while keeping the short-circuit rules of bind():

    @do
    def log_in(user: str, password: str):
        yield nav_to_login()
        field = yield find_element(By.css("#user"))
        yield send_keys(field, user)
        yield send_keys(By.css("#password"), password)
        yield click(By.css("button[type=submit]"))
        return (yield url())

The generator is driven in a loop, so long scenarios do not grow the
Python stack. When a yielded step fails the generator is closed and the
failed state is returned; code after the failing yield never runs.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Generator
from functools import wraps
from typing import Any, ParamSpec, TypeAlias, TypeVar

from isotope.computation import Isotope
from isotope.state import IsotopeState

P = ParamSpec("P")
T = TypeVar("T")

StepGenerator: TypeAlias = Generator[Isotope[Any, Any], Any, T]


def do(func: Callable[P, StepGenerator[T]]) -> Callable[P, Isotope[Any, T]]:
    """
    Turn a generator function into a function returning an Isotope.

    Calling the decorated function does not start the generator; a fresh
    generator is created on every run, so the returned Isotope can be run
    more than once.
    """

    @wraps(func)
    def build(*args: P.args, **kwargs: P.kwargs) -> Isotope[Any, T]:
        def run(env: Any, state: IsotopeState) -> tuple[T | None, IsotopeState]:
            gen = func(*args, **kwargs)
            if not inspect.isgenerator(gen):
                return gen, state

            try:
                step = next(gen)
                while True:
                    if not isinstance(step, Isotope):
                        gen.close()
                        raise TypeError(
                            f"{func.__qualname__} yielded {type(step).__name__}, expected an Isotope"
                        )
                    value, state = step.run_state(env, state)
                    if state.error is not None:
                        gen.close()
                        return None, state
                    step = gen.send(value)
            except StopIteration as stop:
                return stop.value, state

        return Isotope(run)

    return build
