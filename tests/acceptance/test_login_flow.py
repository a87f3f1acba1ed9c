"""
End-to-end acceptance tests: a login journey against an in-memory browser.

Exercises the full stack the way a test suite would use it: configuration,
environment, @do scenarios, log contexts, polling for elements and
clickability, collected checks and the run entry points.

Each test follows Given/When/Then BDD structure in its docstring.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import pytest

from conftest import FakeDriver, FakeElement
from isotope import (
    By,
    ErrorKind,
    IsotopeAssertions,
    IsotopeFailure,
    asks,
    click,
    collect,
    config,
    context,
    do,
    fail,
    find_element,
    init_config,
    log,
    nav,
    pure,
    run,
    run_and_throw_on_error,
    send_keys,
    sequence,
    text,
    url,
    wait_until_clickable,
)

pytestmark = pytest.mark.acceptance

USERNAME = By.id("username")
PASSWORD = By.id("password")
SUBMIT = By.css("button[type=submit]")
HEADING = By.css("h1.dashboard")

BASE_URL = "https://shop.test"


@dataclass(frozen=True, slots=True)
class Credentials:
    """Environment of the scenario: who logs in."""

    user: str
    password: str


class SubmitButton(FakeElement):
    """A button that runs a callback when clicked."""

    def __init__(self, on_click: Callable[[], None]) -> None:
        super().__init__(tag_name="button", text="Log in", attributes={"type": "submit"})
        self.on_click = on_click

    def click(self) -> None:
        super().click()
        self.on_click()


# ── Fake site ────────────────────────────────────────────────────────────────


def build_site(valid_password: str = "secret") -> FakeDriver:
    """A login form that reveals the dashboard heading after a correct password."""
    driver = FakeDriver()
    username = FakeElement(tag_name="input", attributes={"id": "username"})
    password = FakeElement(tag_name="input", attributes={"id": "password"})
    heading = FakeElement(tag_name="h1", text="Welcome alice", attributes={"class": "dashboard"})

    def submit() -> None:
        if password.typed == [valid_password]:
            driver.current_url = f"{BASE_URL}/dashboard"
            driver.elements[(HEADING.by, HEADING.value)] = [heading]

    button = SubmitButton(submit)
    driver.elements[(USERNAME.by, USERNAME.value)] = [username]
    driver.elements[(PASSWORD.by, PASSWORD.value)] = [password]
    driver.elements[(SUBMIT.by, SUBMIT.value)] = [button]
    # Nothing covers the button.
    driver.script_result = button
    return driver


# ── Scenario steps ───────────────────────────────────────────────────────────


@do
def log_in():
    base_url = yield config("base_url")
    user = yield asks(lambda env: env.user)
    password = yield asks(lambda env: env.password)

    yield log(f"Logging in as {user}")
    yield nav(f"{base_url}/login")
    yield context(
        "Enter credentials",
        sequence([send_keys(USERNAME, user), send_keys(PASSWORD, password)]),
    )
    button = yield wait_until_clickable(SUBMIT)
    yield click(button)
    heading = yield find_element(HEADING)
    return (yield text(heading))


def expect(actual: str, expected: str, what: str):
    if actual == expected:
        return pure(actual)
    return fail(f"Expected {what} {expected!r} but was {actual!r}")


def check_dashboard(expected_url: str, expected_heading: str):
    return collect(
        [
            url().bind(lambda u: expect(u, expected_url, "url")),
            find_element(HEADING, wait=False).bind(text).bind(lambda t: expect(t, expected_heading, "heading")),
        ]
    )


def scenario():
    return init_config({"base_url": BASE_URL}).then(log_in())


# ── Tests ────────────────────────────────────────────────────────────────────


class TestLoginJourney:
    def test_successful_login(self, settings, recorded):
        """
        GIVEN a login page and correct credentials
        WHEN the login scenario runs
        THEN the dashboard heading is returned
        AND the log holds the credentials context with its steps nested.
        """
        driver = build_site()
        outcome = run(scenario(), env=Credentials("alice", "secret"), driver=driver, settings=settings)

        heading = IsotopeAssertions.assert_success(outcome)
        state, _ = outcome
        assert heading == "Welcome alice"
        assert driver.visited == [f"{BASE_URL}/login"]
        assert [e.message for e in state.log][:2] == ["Logging in as alice", "Enter credentials"]
        assert state.log.open_depth == 0
        assert "Waiting until clickable: By.css selector: button[type=submit]" in recorded

    def test_wrong_password_times_out(self, settings, failure_sink):
        """
        GIVEN a login page and a wrong password
        WHEN the login scenario runs through run_and_throw_on_error
        THEN waiting for the dashboard heading times out
        AND the failure sink receives the message and log before IsotopeFailure is raised.
        """
        driver = build_site()

        with pytest.raises(IsotopeFailure) as exc_info:
            run_and_throw_on_error(scenario(), env=Credentials("alice", "wrong"), driver=driver, settings=settings)

        failure = exc_info.value
        assert failure.error.kind == ErrorKind.TIMEOUT
        assert failure.message == "Timed Out"
        failure_sink.assert_called_once_with("Timed Out", failure.log)

    def test_driver_disposed_after_run(self, settings):
        """
        GIVEN settings that ask for disposal on completion
        WHEN the scenario runs
        THEN the browser is quit exactly once.
        """
        driver = build_site()
        state, _ = run(
            scenario(),
            env=Credentials("alice", "secret"),
            driver=driver,
            settings=settings.with_(dispose_on_completion=True),
        )
        assert state.error is None
        assert driver.quit_calls == 1
        assert state.driver is None


class TestDashboardChecks:
    def test_every_failed_check_is_reported(self, settings):
        """
        GIVEN a logged-in dashboard
        WHEN two checks that both fail are collected
        THEN both failures are reported, joined in order.
        """
        driver = build_site()
        step = scenario().then(check_dashboard(f"{BASE_URL}/home", "Welcome bob"))
        outcome = run(step, env=Credentials("alice", "secret"), driver=driver, settings=settings)

        error = IsotopeAssertions.assert_failure(outcome, ErrorKind.AGGREGATED)
        assert error.message == (
            f"Expected url '{BASE_URL}/home' but was '{BASE_URL}/dashboard'"
            " | Expected heading 'Welcome bob' but was 'Welcome alice'"
        )

    def test_passing_checks(self, settings):
        driver = build_site()
        step = scenario().then(check_dashboard(f"{BASE_URL}/dashboard", "Welcome alice"))
        state, values = run(step, env=Credentials("alice", "secret"), driver=driver, settings=settings)
        assert state.error is None
        assert values == [f"{BASE_URL}/dashboard", "Welcome alice"]
