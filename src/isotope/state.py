"""
State — the record threaded through every step of a test run.

Everything here is immutable: a step "changes" the state by returning a
new IsotopeState built with `with_(...)`. The log is a small persistent
tree so a failed run can be read back step by step.

    Log
    ├── "Open login page"            (flat entry)
    └── "Log in"                     (context, opened by push and closed by pop)
        ├── "Typing user name"
        └── "Clicking submit"
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from isotope.failure import IsotopeError
from isotope.settings import IsotopeSettings

if TYPE_CHECKING:
    from isotope.driver import WebDriver


@dataclass(frozen=True, slots=True)
class LogEntry:
    """A recorded message; contexts additionally hold the entries logged inside them."""

    message: str
    children: tuple[LogEntry, ...] = ()
    is_context: bool = False


def _append(entries: tuple[LogEntry, ...], depth: int, entry: LogEntry) -> tuple[LogEntry, ...]:
    # Open contexts are always the last entry on their level.
    if depth == 0:
        return (*entries, entry)
    last = entries[-1]
    return (*entries[:-1], replace(last, children=_append(last.children, depth - 1, entry)))


@dataclass(frozen=True, slots=True)
class Log:
    """
    Ordered, nestable trace of executed steps.

    `open_depth` counts the contexts opened by push() and not yet closed
    by pop(); new entries go into the innermost open context.
    """

    entries: tuple[LogEntry, ...] = ()
    open_depth: int = 0

    def write(self, message: str) -> Log:
        """Append a flat message at the innermost open context."""
        return Log(_append(self.entries, self.open_depth, LogEntry(message)), self.open_depth)

    def push(self, message: str) -> Log:
        """Append a context entry and open it."""
        entry = LogEntry(message, is_context=True)
        return Log(_append(self.entries, self.open_depth, entry), self.open_depth + 1)

    def pop(self) -> Log:
        """Close the innermost open context. Popping with nothing open is a no-op."""
        if self.open_depth == 0:
            return self
        return Log(self.entries, self.open_depth - 1)

    def render(self, indent: str = "  ") -> str:
        """Indented text rendering, one entry per line."""
        lines: list[str] = []

        def walk(entries: tuple[LogEntry, ...], level: int) -> None:
            for entry in entries:
                lines.append(f"{indent * level}{entry.message}")
                walk(entry.children, level + 1)

        walk(self.entries, 0)
        return "\n".join(lines)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)


EMPTY_LOG = Log()


@dataclass(frozen=True, slots=True)
class IsotopeState:
    """
    Driver handle, error, log, settings and configuration for one run.

    Once `error` is set, combinators pass the state through untouched; only
    an explicit put() of a fresh state clears it.
    """

    driver: WebDriver | None = None
    error: IsotopeError | None = None
    log: Log = EMPTY_LOG
    settings: IsotopeSettings = field(default_factory=IsotopeSettings)
    configuration: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @staticmethod
    def empty(
        driver: WebDriver | None = None,
        settings: IsotopeSettings | None = None,
    ) -> IsotopeState:
        """Initial state for a run, optionally pre-seeded with a driver and settings."""
        return IsotopeState(driver=driver, settings=settings if settings is not None else IsotopeSettings())

    @property
    def failed(self) -> bool:
        return self.error is not None

    def with_(self, **changes: Any) -> IsotopeState:
        """Return a copy with the given fields replaced."""
        if "configuration" in changes:
            changes["configuration"] = MappingProxyType(dict(changes["configuration"]))
        return replace(self, **changes)

    def write(self, message: str, logging_action: Callable[[str], None] | None = None) -> IsotopeState:
        """Record a flat message and hand it to the logging sink."""
        (logging_action or self.settings.logging_action)(message)
        return replace(self, log=self.log.write(message))

    def push_log(self, message: str, logging_action: Callable[[str], None] | None = None) -> IsotopeState:
        """Record a message and open a nested context under it."""
        (logging_action or self.settings.logging_action)(message)
        return replace(self, log=self.log.push(message))

    def pop_log(self) -> IsotopeState:
        return replace(self, log=self.log.pop())

    def dispose_driver(self) -> IsotopeState:
        """Quit the driver, if any, and drop the handle."""
        if self.driver is None:
            return self
        self.driver.quit()
        return replace(self, driver=None)
