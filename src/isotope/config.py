"""
Configuration — a string-keyed lookup table carried in the state.

Set in bulk at the start of a scenario, read one key at a time by the
steps that need it:

    sequence([
        init_config({"base_url": "https://shop.test", "user": "alice"}),
        config("base_url").bind(nav),
    ])
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from isotope.computation import Isotope, fail, get, pure, put
from isotope.failure import ErrorKind
from isotope.settings import IsotopeSettings


def init_config(
    configuration: Mapping[str, str] | Iterable[tuple[str, str]] = (),
    **items: str,
) -> Isotope[Any, None]:
    """Replace the configuration mapping with the given pairs."""
    merged = dict(configuration)
    merged.update(items)
    return get().bind(lambda state: put(state.with_(configuration=merged)))


def config(key: str) -> Isotope[Any, str]:
    """Look up one configuration key, failing as NOT_FOUND when it is absent."""

    def find(configuration: Mapping[str, str]) -> Isotope[Any, str]:
        if key not in configuration:
            return fail(f"Configuration key not found: {key}", ErrorKind.NOT_FOUND)
        return pure(configuration[key])

    return get().bind(lambda state: find(state.configuration))


def init_settings(settings: IsotopeSettings) -> Isotope[Any, None]:
    """Replace the settings wholesale."""
    return get().bind(lambda state: put(state.with_(settings=settings)))
