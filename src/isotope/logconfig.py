"""
structlog wiring for test suites that use isotope.

Library modules only call structlog.get_logger(); a test suite (usually
from conftest.py) decides where events go by calling configure_structlog().

Every event emitted while run() executes carries a `run_id`, bound through
structlog's contextvars, so the steps of one test can be picked out of an
interleaved CI log:

    configure_structlog("DEBUG", json=True)
    run(checkout, env=fixture, driver=driver)
    # {"event": "isotope.step", "message": "Log in", "run_id": "3f9c0a1b2e4d", ...}
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO
from uuid import uuid4

import structlog


def configure_structlog(
    log_level: str = "INFO",
    json: bool = False,
    stream: TextIO | None = None,
) -> None:
    """
    Configure structlog for step and run events.

    Console output is human-readable, and colored unless a `stream` is
    given; json=True emits one JSON object per line, with exceptions as
    structured tracebacks. `stream` defaults to stdout.
    """
    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer(colors=stream is None)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )


@contextmanager
def run_scope(run_id: str | None = None) -> Iterator[str]:
    """
    Bind `run_id` to every structlog event emitted inside the block.

    A fresh id is generated when none is given. Nested scopes shadow the
    outer id and restore it on exit.
    """
    run_id = run_id or uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(run_id=run_id):
        yield run_id
