# webpoll/session.py
from __future__ import annotations

"""Session context
------------------
The ambient driver slot used by webpoll.api, and the per-driver
nesting-guard cache behind webpoll.api contexts.

The slot is process-wide and has no per-thread isolation: code running tests
in several threads must pass `driver=` explicitly to every api call. The
nesting guard inside each ExecutionContext is thread-local, so sharing a
driver's context across threads is safe; sharing the slot is not.
"""

import threading
import weakref
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from webpoll.core.context import ExecutionContext, NestingState
from webpoll.core.errors import NoDriverError
from webpoll.utils.logger import get_logger

log = get_logger(__name__)

_driver: Any = None
_states: "weakref.WeakKeyDictionary[Any, NestingState]" = weakref.WeakKeyDictionary()
_states_lock = threading.Lock()


# ---------- Ambient slot ----------

def set_driver(driver: Any) -> None:
    """Bind `driver` as the ambient driver. None leaves the slot unchanged."""
    global _driver
    if driver is not None:
        _driver = driver


def clear_driver() -> None:
    global _driver
    _driver = None


def current_driver() -> Any:
    """The ambient driver, or None."""
    return _driver


def get_driver(driver: Any = None) -> Any:
    """`driver` if given, else the ambient one. Raises NoDriverError if neither."""
    d = driver if driver is not None else _driver
    if d is None:
        raise NoDriverError("No driver bound; pass driver= or use set_driver()/driver_scope()")
    return d


@contextmanager
def driver_scope(driver: Any) -> Iterator[Any]:
    """Bind `driver` for the block; the previous ambient driver is restored on exit."""
    global _driver
    prev = _driver
    _driver = driver
    try:
        yield driver
    finally:
        _driver = prev


# ---------- Contexts ----------

def context_for(driver: Any = None) -> ExecutionContext:
    """
    The ExecutionContext for `driver` (or the ambient driver).

    Every context built for the same driver shares one nesting guard, so an
    api call made from inside another api call's poll loop does not start its
    own clock. Only the guard is cached: it holds no reference to the driver,
    and the entry goes away with the driver.
    """
    d = get_driver(driver)
    with _states_lock:
        state = _states.get(d)
        if state is None:
            state = _states[d] = NestingState()
    return ExecutionContext(driver=d, _state=state)


@contextmanager
def browser_session(factory: Optional[Callable[[], Any]] = None) -> Iterator[Any]:
    """
    Start a fresh driver, bind it as ambient for the block, then quit it and
    restore whatever was bound before.

        with browser_session() as driver:
            api.to("https://example.com")
    """
    if factory is None:
        from webpoll.driver import create_driver
        factory = create_driver
    driver = factory()
    log.info(f"Started browser session {type(driver).__name__}")
    try:
        with driver_scope(driver):
            yield driver
    finally:
        driver.quit()
        log.info("Browser session closed")


__all__ = [
    "set_driver",
    "clear_driver",
    "current_driver",
    "get_driver",
    "driver_scope",
    "context_for",
    "browser_session",
]
