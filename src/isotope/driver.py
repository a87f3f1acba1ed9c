"""
Driver capability — the browser, seen through a structural port.

The core never imports a browser automation library. WebDriver and
WebElement are Protocols shaped after Selenium's classes, so a Selenium
driver (or any test double with the same methods) satisfies them without
inheritance.

Every primitive below wraps exactly one kind of driver call into an
Isotope: an exception raised by the driver becomes an EXCEPTION-kind error
in the state, and nothing escapes past the step boundary.

    from selenium import webdriver
    state, _ = run(sequence([nav("https://shop.test"), click(By.css("#basket"))]),
                   env=None, driver=webdriver.Firefox())
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Protocol, TypeAlias, runtime_checkable

from isotope.computation import (
    Isotope,
    default_wait,
    fail,
    from_optional,
    get,
    pure,
    try_a,
    try_f,
)
from isotope.failure import ErrorKind, IsotopeError
from isotope.logs import log
from isotope.retry import wait_until
from isotope.state import IsotopeState

# ──────────────────────── Ports ────────────────────────


@runtime_checkable
class WebElement(Protocol):
    """Port: one element of the page under test."""

    @property
    def text(self) -> str: ...

    @property
    def tag_name(self) -> str: ...

    @property
    def location(self) -> dict[str, int]: ...

    @property
    def size(self) -> dict[str, int]: ...

    def click(self) -> None: ...

    def send_keys(self, *value: str) -> None: ...

    def clear(self) -> None: ...

    def get_attribute(self, name: str) -> str | None: ...

    def value_of_css_property(self, property_name: str) -> str: ...

    def is_displayed(self) -> bool: ...

    def is_enabled(self) -> bool: ...

    def is_selected(self) -> bool: ...

    def find_elements(self, by: str, value: str) -> Sequence[WebElement]: ...


@runtime_checkable
class WebDriver(Protocol):
    """
    Port: the browser session owned by a run.

    The state holds at most one driver; run() calls quit() on it when the
    settings ask for disposal on completion.
    """

    @property
    def current_url(self) -> str: ...

    def get(self, url: str) -> None: ...

    def find_elements(self, by: str, value: str) -> Sequence[WebElement]: ...

    def set_window_size(self, width: int, height: int) -> None: ...

    def execute_script(self, script: str, *args: Any) -> Any: ...

    def quit(self) -> None: ...


@dataclass(frozen=True, slots=True)
class By:
    """
    An element selector: a locator strategy plus its value.

    Strategy names match the WebDriver protocol ("css selector", "xpath", ...).
    """

    by: str
    value: str

    @staticmethod
    def css(value: str) -> By:
        return By("css selector", value)

    @staticmethod
    def xpath(value: str) -> By:
        return By("xpath", value)

    @staticmethod
    def id(value: str) -> By:
        return By("id", value)

    @staticmethod
    def name(value: str) -> By:
        return By("name", value)

    @staticmethod
    def tag_name(value: str) -> By:
        return By("tag name", value)

    @staticmethod
    def class_name(value: str) -> By:
        return By("class name", value)

    @staticmethod
    def link_text(value: str) -> By:
        return By("link text", value)

    def __str__(self) -> str:
        return f"By.{self.by}: {self.value}"


Target: TypeAlias = By | WebElement


def pretty_print(element: WebElement) -> str:
    """Short HTML-ish description of an element for error messages."""
    try:
        tag = element.tag_name
        css = element.get_attribute("class")
        element_id = element.get_attribute("id")
    except Exception:
        return repr(element)
    return f"<{tag} class='{css}' id='{element_id}'>"


def _failed(prefix: str, element: WebElement) -> Callable[[Exception], str]:
    return lambda e: f"{prefix}: {pretty_print(element)}\nDetails: {e}"


# ──────────────────────── Driver Handle ────────────────────────


def web_driver() -> Isotope[Any, WebDriver]:
    """The current driver, failing when none has been selected."""
    return get().bind(lambda state: from_optional(state.driver, "web-driver hasn't been selected yet"))


def set_web_driver(driver: WebDriver) -> Isotope[Any, None]:
    """Install a driver into the state."""
    return Isotope(lambda env, state: (None, state.with_(driver=driver)))


def dispose_web_driver() -> Isotope[Any, None]:
    """Quit the current driver, if any, and drop it from the state."""

    def run(env: Any, state: IsotopeState) -> tuple[None, IsotopeState]:
        try:
            return None, state.dispose_driver()
        except Exception as e:
            return None, state.with_(error=IsotopeError.from_exception(f"Failed to dispose web-driver: {e}", e))

    return Isotope(run)


def set_window_size(width: int, height: int) -> Isotope[Any, None]:
    return web_driver().bind(
        lambda d: try_a(
            lambda: d.set_window_size(width, height),
            f"Failed to change browser window size to {width}x{height}",
        )
    )


def nav(url: str) -> Isotope[Any, None]:
    """Navigate to a URL."""
    return web_driver().bind(lambda d: try_a(lambda: d.get(url), f"Failed to navigate to: {url}"))


def url() -> Isotope[Any, str]:
    """The URL currently displayed by the browser."""
    return web_driver().bind(lambda d: try_f(lambda: d.current_url, "Failed to read the current URL"))


def get_screenshot() -> Isotope[Any, bytes | None]:
    """A PNG screenshot, or None when the driver cannot take one."""

    def capture(d: WebDriver) -> Isotope[Any, bytes | None]:
        take = getattr(d, "get_screenshot_as_png", None)
        if take is None:
            return pure(None)
        return try_f(take, "Failed to take a screenshot")

    return web_driver().bind(capture)


# ──────────────────────── Finding Elements ────────────────────────


def _search_root(parent: WebElement | None) -> Isotope[Any, WebDriver | WebElement]:
    if parent is not None:
        return pure(parent)
    return web_driver()


def find_elements_or_empty(
    selector: By,
    parent: WebElement | None = None,
    error: str | None = None,
) -> Isotope[Any, list[WebElement]]:
    """All elements matching `selector` (within `parent`), possibly none."""
    return _search_root(parent).bind(
        lambda root: try_f(
            lambda: list(root.find_elements(selector.by, selector.value)),
            error or f"Can't find any elements {selector}",
        )
    )


def find_optional_element(
    selector: By,
    parent: WebElement | None = None,
    error: str | None = None,
) -> Isotope[Any, WebElement | None]:
    """The first element matching `selector`, or None."""
    return find_elements_or_empty(selector, parent, error).map(lambda es: es[0] if es else None)


def wait_until_element_exists(
    selector: By,
    parent: WebElement | None = None,
    interval: timedelta | None = None,
    wait: timedelta | None = None,
) -> Isotope[Any, WebElement]:
    """Poll until an element matching `selector` appears."""
    return wait_until(
        find_optional_element(selector, parent),
        lambda el: el is None,
        interval=interval,
        wait=wait,
    ).bind(lambda el: from_optional(el, "Element not found within timeout period"))


def wait_until_elements_exist(
    selector: By,
    parent: WebElement | None = None,
    interval: timedelta | None = None,
    wait: timedelta | None = None,
) -> Isotope[Any, list[WebElement]]:
    """Poll until at least one element matches `selector`."""
    return wait_until(
        find_elements_or_empty(selector, parent),
        lambda es: not es,
        interval=interval,
        wait=wait,
    )


def find_element(
    selector: By,
    parent: WebElement | None = None,
    wait: bool = True,
    error_message: str | None = None,
) -> Isotope[Any, WebElement]:
    """
    Find one element, by default waiting for it to appear.

    With wait=False a single lookup is made and a miss fails immediately.
    """
    if wait:
        return wait_until_element_exists(selector, parent)
    return find_optional_element(selector, parent).bind(
        lambda el: from_optional(el, error_message or f"Can't find element {selector}")
    )


def find_elements(
    selector: By,
    parent: WebElement | None = None,
    wait: bool = True,
    error: str | None = None,
) -> Isotope[Any, list[WebElement]]:
    """Find at least one element, by default waiting for them to appear."""
    if wait:
        return wait_until_elements_exist(selector, parent)

    def non_empty(es: list[WebElement]) -> Isotope[Any, list[WebElement]]:
        if not es:
            return fail(error or f"Can't find any elements {selector}", ErrorKind.NOT_FOUND)
        return pure(es)

    return find_elements_or_empty(selector, parent, error).bind(non_empty)


def _element(target: Target) -> Isotope[Any, WebElement]:
    if isinstance(target, By):
        return find_element(target)
    return pure(target)


def exists(selector: By) -> Isotope[Any, bool]:
    """Whether any element currently matches `selector`. Does not wait."""
    return find_optional_element(selector).map(lambda el: el is not None)


# ──────────────────────── Interaction ────────────────────────


def click(target: Target) -> Isotope[Any, None]:
    """Simulate a mouse click."""
    return _element(target).bind(lambda el: try_a(el.click, _failed("Error clicking element", el)))


def send_keys(target: Target, keys: str) -> Isotope[Any, None]:
    """Simulate typing `keys` into an element."""
    return _element(target).bind(
        lambda el: try_a(lambda: el.send_keys(keys), _failed(f'Error sending keys "{keys}" to element', el))
    )


def clear(target: Target) -> Isotope[Any, None]:
    """Clear the content of an input element."""
    return _element(target).bind(lambda el: try_a(el.clear, _failed("Error clearing element", el)))


def set_checkbox(target: Target, ticked: bool) -> Isotope[Any, None]:
    """Click a checkbox only if its state differs from `ticked`."""
    return _element(target).bind(
        lambda el: is_checkbox_checked(el).bind(lambda checked: pure(None) if checked == ticked else click(el))
    )


# ──────────────────────── Reading ────────────────────────


def text(target: Target) -> Isotope[Any, str]:
    return _element(target).bind(lambda el: try_f(lambda: el.text, _failed("Error getting text from element", el)))


def value(target: Target) -> Isotope[Any, str | None]:
    """The value attribute of an input element."""
    return _element(target).bind(
        lambda el: try_f(lambda: el.get_attribute("value"), _failed("Error getting value from element", el))
    )


def attribute(target: Target, name: str) -> Isotope[Any, str | None]:
    return _element(target).bind(
        lambda el: try_f(lambda: el.get_attribute(name), f"Attribute {name} could not be found.")
    )


def get_style(target: Target, style: str) -> Isotope[Any, str]:
    """A computed CSS property of an element."""
    return _element(target).bind(
        lambda el: try_f(lambda: el.value_of_css_property(style), f"Could not find style {style}")
    )


def get_z_index(target: Target) -> Isotope[Any, int]:
    def parse(raw: str) -> Isotope[Any, int]:
        try:
            return pure(int(raw))
        except (TypeError, ValueError):
            return fail(f"z-index was not a valid integer: {raw}.")

    return get_style(target, "z-index").bind(parse)


def has_text(target: Target, comparison: str) -> Isotope[Any, bool]:
    """Whether an element's text equals `comparison` exactly."""
    return text(target).map(lambda t: t == comparison)


def displayed(target: Target) -> Isotope[Any, bool]:
    return _element(target).bind(
        lambda el: try_f(el.is_displayed, f"Error getting display status of {pretty_print(el)}")
    )


def enabled(target: Target) -> Isotope[Any, bool]:
    return _element(target).bind(
        lambda el: try_f(el.is_enabled, f"Error getting enabled status of {pretty_print(el)}")
    )


def is_checkbox_checked(target: Target) -> Isotope[Any, bool]:
    return _element(target).bind(
        lambda el: try_f(el.is_selected, f"Error getting checked status of {pretty_print(el)}")
    )


def obscured(element: WebElement) -> Isotope[Any, bool]:
    """
    Whether another element covers the centre point of `element`.

    Uses document.elementFromPoint in the page.
    """

    def probe(d: WebDriver) -> Isotope[Any, bool]:
        def centre() -> tuple[int, int]:
            location, size = element.location, element.size
            return location["x"] + size["width"] // 2, location["y"] + size["height"] // 2

        def top_at(point: tuple[int, int]) -> Isotope[Any, Any]:
            x, y = point
            return log(f"X: {x}, Y: {y}").then(
                try_f(
                    lambda: d.execute_script(f"return document.elementFromPoint({x}, {y});"),
                    f"Error finding the element at ({x}, {y})",
                )
            )

        return (
            try_f(centre, f"Error getting position of {pretty_print(element)}")
            .bind(top_at)
            .bind(lambda top: log(f"Target: {pretty_print(element)}, Top: {top!r}").map(lambda _: top != element))
        )

    return web_driver().bind(probe)


# ──────────────────────── Select Elements ────────────────────────


def _options(select: WebElement) -> Isotope[Any, list[WebElement]]:
    return find_elements_or_empty(By.tag_name("option"), parent=select)


def _pick_option(
    target: Target,
    matches: Callable[[WebElement], bool],
    description: str,
) -> Isotope[Any, None]:
    message = f"Unable to select {description}"

    def pick(options: list[WebElement]) -> Isotope[Any, None]:
        return (
            try_f(lambda: next((o for o in options if matches(o)), None), message)
            .bind(lambda option: from_optional(option, message))
            .bind(click)
        )

    return _element(target).bind(_options).bind(pick)


def select_by_text(target: Target, option_text: str) -> Isotope[Any, None]:
    """Select the <option> of a <select> whose text is `option_text`."""
    return _pick_option(target, lambda o: o.text == option_text, f"option with text {option_text!r}")


def select_by_value(target: Target, option_value: str) -> Isotope[Any, None]:
    """Select the <option> of a <select> whose value attribute is `option_value`."""
    return _pick_option(
        target, lambda o: o.get_attribute("value") == option_value, f"option with value {option_value!r}"
    )


def get_selected_option(target: Target) -> Isotope[Any, WebElement]:
    message = "Unable to get selected option"
    return (
        _element(target)
        .bind(_options)
        .bind(lambda options: try_f(lambda: next((o for o in options if o.is_selected()), None), message))
        .bind(lambda option: from_optional(option, message))
    )


def get_selected_option_text(target: Target) -> Isotope[Any, str]:
    return get_selected_option(target).bind(text)


def get_selected_option_value(target: Target) -> Isotope[Any, str | None]:
    return get_selected_option(target).bind(value)


# ──────────────────────── Waiting ────────────────────────


def _clickable(el: WebElement) -> Isotope[Any, bool]:
    return (
        log(f"Checking clickability {pretty_print(el)}")
        .then(displayed(el))
        .bind(lambda d: enabled(el).bind(lambda e: obscured(el).map(lambda o: (d, e, o))))
        .bind(
            lambda flags: log(f"Displayed: {flags[0]}, Enabled: {flags[1]}, Obscured: {flags[2]}").map(
                lambda _: flags[0] and flags[1] and not flags[2]
            )
        )
    )


def wait_until_clickable(target: Target, timeout: timedelta | None = None) -> Isotope[Any, WebElement]:
    """
    Wait for an element to be displayed, enabled and not obscured.

    Fails with a timeout when that does not happen within `timeout`
    (default: the settings' wait).
    """
    deadline = pure(timeout) if timeout is not None else default_wait()

    def wait_for(el: WebElement) -> Isotope[Any, WebElement]:
        return deadline.bind(lambda w: wait_until(_clickable(el), lambda ok: not ok, wait=w)).map(lambda _: el)

    if isinstance(target, By):
        return log(f"Waiting until clickable: {target}").then(find_element(target)).bind(wait_for)
    return wait_for(target)
