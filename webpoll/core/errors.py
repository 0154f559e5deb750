# webpoll/core/errors.py
from __future__ import annotations

"""Failure taxonomy
-------------------
Maps Selenium exceptions onto the failure kinds the retry engine reasons about,
plus the few exceptions webpoll raises itself. Selenium exceptions are never
wrapped: after a retry budget runs out the caller sees the driver's own class.
"""

from enum import Enum
from typing import Iterable

from selenium.common.exceptions import (
    ElementClickInterceptedException,
    ElementNotInteractableException,
    JavascriptException,
    NoSuchElementException,
    StaleElementReferenceException,
    TimeoutException,
)


class FailureKind(str, Enum):
    NOT_FOUND = "not_found"
    STALE = "stale"
    NOT_INTERACTABLE = "not_interactable"
    CLICK_INTERCEPTED = "click_intercepted"
    TIMEOUT = "timeout"
    SCRIPT_ERROR = "script_error"
    FORCE_RETRY = "force_retry"
    OTHER = "other"


DEFAULT_RETRYABLE: frozenset[FailureKind] = frozenset(
    {
        FailureKind.NOT_FOUND,
        FailureKind.STALE,
        FailureKind.NOT_INTERACTABLE,
        FailureKind.CLICK_INTERCEPTED,
        FailureKind.TIMEOUT,
    }
)


class WebpollError(Exception):
    """Base class for errors raised by webpoll itself."""

    kind: FailureKind = FailureKind.OTHER


class LocatorError(WebpollError, ValueError):
    """Locator input has no recognised shape."""


class ForceRetry(WebpollError):
    """Raised from a nested polling scope so the enclosing loop retries."""

    kind = FailureKind.FORCE_RETRY


class RetryTimeout(WebpollError):
    """A wait_until predicate stayed falsy for the whole budget."""

    kind = FailureKind.TIMEOUT

    def __init__(self, description: str, timeout_ms: int):
        self.description = description
        self.timeout_ms = timeout_ms
        super().__init__(f"Timed out after {timeout_ms} ms waiting for {description}")


class FormFillMismatch(WebpollError, AssertionError):
    """A form field read back something other than what was typed."""

    def __init__(self, selector: str, expected: str, actual: str):
        self.selector = selector
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Failed to fill form element '{selector}' with '{expected}' (mis-entered to '{actual}')"
        )


class NoDriverError(WebpollError, RuntimeError):
    """No explicit driver was passed and no ambient driver is bound."""


class ScenarioError(WebpollError, ValueError):
    """Scenario YAML could not be loaded or validated."""


# Order matters: subclasses before the classes they extend.
_SELENIUM_KINDS: tuple[tuple[type[BaseException], FailureKind], ...] = (
    (StaleElementReferenceException, FailureKind.STALE),
    (ElementClickInterceptedException, FailureKind.CLICK_INTERCEPTED),
    (ElementNotInteractableException, FailureKind.NOT_INTERACTABLE),
    (NoSuchElementException, FailureKind.NOT_FOUND),
    (TimeoutException, FailureKind.TIMEOUT),
    (JavascriptException, FailureKind.SCRIPT_ERROR),
)


def classify(exc: BaseException) -> FailureKind:
    """Return the failure kind for an exception raised by an action."""
    if isinstance(exc, WebpollError):
        return exc.kind
    for cls, kind in _SELENIUM_KINDS:
        if isinstance(exc, cls):
            return kind
    return FailureKind.OTHER


def is_retryable(exc: BaseException, retryable: Iterable[FailureKind]) -> bool:
    kind = classify(exc)
    return kind is FailureKind.FORCE_RETRY or kind in retryable


__all__ = [
    "FailureKind",
    "DEFAULT_RETRYABLE",
    "WebpollError",
    "LocatorError",
    "ForceRetry",
    "RetryTimeout",
    "FormFillMismatch",
    "NoDriverError",
    "ScenarioError",
    "classify",
    "is_retryable",
]
