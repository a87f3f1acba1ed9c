"""
Shared test fixtures for the isotope test suite.

Provides an in-memory fake browser (FakeDriver / FakeElement) that
satisfies the WebDriver and WebElement protocols, plus fast settings whose
sinks record what they receive.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from typing import Any
from unittest.mock import MagicMock

import pytest

from isotope import Isotope, IsotopeSettings, IsotopeState, fail, pure


class FakeElement:
    """A page element with just enough behaviour for the driver primitives."""

    def __init__(
        self,
        tag_name: str = "div",
        text: str = "",
        attributes: dict[str, str] | None = None,
        displayed: bool = True,
        enabled: bool = True,
        selected: bool = False,
        location: dict[str, int] | None = None,
        size: dict[str, int] | None = None,
        children: dict[tuple[str, str], list[FakeElement]] | None = None,
    ) -> None:
        self.tag_name = tag_name
        self.text = text
        self.attributes = dict(attributes or {})
        self.displayed = displayed
        self.enabled = enabled
        self.selected = selected
        self.location = location or {"x": 10, "y": 20}
        self.size = size or {"width": 100, "height": 40}
        self.children = children or {}
        self.clicks = 0
        self.typed: list[str] = []
        self.fail_on_click: Exception | None = None

    def click(self) -> None:
        if self.fail_on_click is not None:
            raise self.fail_on_click
        self.clicks += 1
        if self.tag_name in ("input", "option"):
            self.selected = not self.selected if self.tag_name == "input" else True

    def send_keys(self, *value: str) -> None:
        self.typed.append("".join(value))

    def clear(self) -> None:
        self.typed.clear()

    def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    def value_of_css_property(self, property_name: str) -> str:
        return self.attributes[f"style:{property_name}"]

    def is_displayed(self) -> bool:
        return self.displayed

    def is_enabled(self) -> bool:
        return self.enabled

    def is_selected(self) -> bool:
        return self.selected

    def find_elements(self, by: str, value: str) -> list[FakeElement]:
        return list(self.children.get((by, value), []))


class FakeDriver:
    """
    A browser session backed by dictionaries.

    `appear_after[(by, value)] = n` makes the first n lookups of that
    selector come back empty, to exercise the polling primitives.
    """

    def __init__(self, elements: dict[tuple[str, str], list[FakeElement]] | None = None) -> None:
        self.elements = elements or {}
        self.appear_after: dict[tuple[str, str], int] = {}
        self.lookups: dict[tuple[str, str], int] = {}
        self.current_url = "about:blank"
        self.visited: list[str] = []
        self.window_size: tuple[int, int] | None = None
        self.script_result: Any = None
        self.scripts: list[str] = []
        self.quit_calls = 0

    def get(self, url: str) -> None:
        if url.startswith("broken://"):
            raise ConnectionError(f"cannot reach {url}")
        self.visited.append(url)
        self.current_url = url

    def find_elements(self, by: str, value: str) -> list[FakeElement]:
        key = (by, value)
        self.lookups[key] = self.lookups.get(key, 0) + 1
        if self.lookups[key] <= self.appear_after.get(key, 0):
            return []
        return list(self.elements.get(key, []))

    def set_window_size(self, width: int, height: int) -> None:
        self.window_size = (width, height)

    def execute_script(self, script: str, *args: Any) -> Any:
        self.scripts.append(script)
        return self.script_result

    def get_screenshot_as_png(self) -> bytes:
        return b"\x89PNG"

    def quit(self) -> None:
        self.quit_calls += 1


@pytest.fixture()
def recorded() -> list[str]:
    """Messages received by the settings' logging_action."""
    return []


@pytest.fixture()
def failure_sink() -> MagicMock:
    return MagicMock()


@pytest.fixture()
def settings(recorded: list[str], failure_sink: MagicMock) -> IsotopeSettings:
    """Settings with short waits and recording sinks."""
    return IsotopeSettings(
        wait=timedelta(milliseconds=200),
        interval=timedelta(milliseconds=10),
        logging_action=recorded.append,
        failure_action=failure_sink,
    )


@pytest.fixture()
def state(settings: IsotopeSettings) -> IsotopeState:
    return IsotopeState.empty(settings=settings)


@pytest.fixture()
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture()
def driver_state(state: IsotopeState, driver: FakeDriver) -> IsotopeState:
    return state.with_(driver=driver)


class StepCounter:
    """Builds steps that count how often they were executed."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def ok(self, value: Any, name: str | None = None) -> Isotope[Any, Any]:
        def run(env: Any, state: IsotopeState) -> tuple[Any, IsotopeState]:
            self.calls.append(name or repr(value))
            return pure(value).run_state(env, state)

        return Isotope(run)

    def fails(self, message: str) -> Isotope[Any, Any]:
        def run(env: Any, state: IsotopeState) -> tuple[Any, IsotopeState]:
            self.calls.append(message)
            return fail(message).run_state(env, state)

        return Isotope(run)

    def values(self, produce: Callable[[int], Any]) -> Isotope[Any, Any]:
        """A step whose value is produce(n) on its n-th run (starting at 1)."""

        def run(env: Any, state: IsotopeState) -> tuple[Any, IsotopeState]:
            self.calls.append("values")
            return produce(self.calls.count("values")), state

        return Isotope(run)

    @property
    def count(self) -> int:
        return len(self.calls)


@pytest.fixture()
def counter() -> StepCounter:
    return StepCounter()
