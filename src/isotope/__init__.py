"""
isotope — composable browser test steps with state, environment and errors.

A test is built from Isotope computations: each takes the environment
(fixture data) and the test state (driver, error, log, settings,
configuration) and returns a value with a new state. Failures travel in
the state and short-circuit every later step.

    from isotope import By, click, context, find_element, nav, run, send_keys, sequence

    log_in = context("Log in", sequence([
        nav("https://shop.test/login"),
        send_keys(By.css("#user"), "alice"),
        click(By.css("button[type=submit]")),
    ]))

    state, _ = run(log_in, env=None, driver=driver)
    assert state.error is None, state.log.render()
"""

from isotope.aggregation import collect, sequence
from isotope.assertions import IsotopeAssertions
from isotope.computation import (
    Isotope,
    ask,
    asks,
    default_interval,
    default_wait,
    fail,
    from_optional,
    get,
    modify,
    pure,
    put,
    try_a,
    try_f,
    unit,
    void_a,
)
from isotope.config import config, init_config, init_settings
from isotope.do import do
from isotope.driver import (
    By,
    WebDriver,
    WebElement,
    attribute,
    clear,
    click,
    dispose_web_driver,
    displayed,
    enabled,
    exists,
    find_element,
    find_elements,
    find_elements_or_empty,
    find_optional_element,
    get_screenshot,
    get_selected_option,
    get_selected_option_text,
    get_selected_option_value,
    get_style,
    get_z_index,
    has_text,
    is_checkbox_checked,
    nav,
    obscured,
    select_by_text,
    select_by_value,
    send_keys,
    set_checkbox,
    set_web_driver,
    set_window_size,
    text,
    url,
    value,
    wait_until_clickable,
    wait_until_element_exists,
    wait_until_elements_exist,
    web_driver,
)
from isotope.failure import ErrorKind, IsotopeError, IsotopeFailure
from isotope.logconfig import configure_structlog, run_scope
from isotope.logs import context, log, pop_log, push_log
from isotope.retry import do_while, do_while_or_fail, pause, wait_until
from isotope.run import run, run_and_throw_on_error
from isotope.settings import IsotopeSettings
from isotope.state import IsotopeState, Log, LogEntry

__all__ = [
    # core
    "Isotope",
    "IsotopeState",
    "IsotopeSettings",
    "Log",
    "LogEntry",
    "ErrorKind",
    "IsotopeError",
    "IsotopeFailure",
    "pure",
    "unit",
    "fail",
    "get",
    "put",
    "modify",
    "ask",
    "asks",
    "from_optional",
    "try_f",
    "try_a",
    "void_a",
    "default_wait",
    "default_interval",
    "do",
    # aggregation
    "sequence",
    "collect",
    # retry
    "wait_until",
    "do_while",
    "do_while_or_fail",
    "pause",
    # logging
    "log",
    "push_log",
    "pop_log",
    "context",
    "configure_structlog",
    "run_scope",
    # configuration
    "init_config",
    "config",
    "init_settings",
    # run
    "run",
    "run_and_throw_on_error",
    "IsotopeAssertions",
    # driver
    "By",
    "WebDriver",
    "WebElement",
    "web_driver",
    "set_web_driver",
    "dispose_web_driver",
    "set_window_size",
    "nav",
    "url",
    "get_screenshot",
    "find_elements_or_empty",
    "find_optional_element",
    "find_element",
    "find_elements",
    "wait_until_element_exists",
    "wait_until_elements_exist",
    "wait_until_clickable",
    "exists",
    "click",
    "send_keys",
    "clear",
    "set_checkbox",
    "text",
    "value",
    "attribute",
    "get_style",
    "get_z_index",
    "has_text",
    "displayed",
    "enabled",
    "is_checkbox_checked",
    "obscured",
    "select_by_text",
    "select_by_value",
    "get_selected_option",
    "get_selected_option_text",
    "get_selected_option_value",
]

__version__ = "0.1.0"
