# webpoll/core/context.py
from __future__ import annotations

"""Execution context
--------------------
The value every core call receives: which driver to talk to, the retry policy,
and the nesting guard that keeps one deadline clock per call chain.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterator, Optional

from webpoll.core.errors import DEFAULT_RETRYABLE, FailureKind
from webpoll.utils.config import Settings, get_settings


@dataclass(frozen=True)
class PollEvent:
    """Emitted to RetryConfig.on_poll each time an attempt does not succeed."""
    description: str
    attempt: int
    elapsed_ms: int
    outcome: Any
    final: bool = False


@dataclass(frozen=True)
class RetryConfig:
    timeout_ms: int = 15000
    interval_ms: int = 0
    retryable: frozenset[FailureKind] = DEFAULT_RETRYABLE
    on_poll: Optional[Callable[[PollEvent], None]] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides: Any) -> "RetryConfig":
        s = settings or get_settings()
        cfg = cls(timeout_ms=s.DEFAULT_TIMEOUT_MS, interval_ms=s.DEFAULT_INTERVAL_MS)
        return cfg.with_overrides(**overrides) if overrides else cfg

    def with_overrides(self, **overrides: Any) -> "RetryConfig":
        clean = {k: v for k, v in overrides.items() if v is not None}
        if "retryable" in clean:
            clean["retryable"] = frozenset(clean["retryable"])
        return replace(self, **clean)


class NestingState(threading.local):
    polling: bool = False
    suppress_nested: bool = False


@dataclass(eq=False)
class ExecutionContext:
    """
    Driver + retry policy + nesting guard.

    The guard lives in thread-local storage, so one context can be shared by
    several threads without one thread's poll loop turning another thread's
    top-level call into a nested one.
    """
    driver: Any
    config: RetryConfig = field(default_factory=RetryConfig.from_settings)
    narrate: bool = field(default_factory=lambda: get_settings().NARRATE_ACTIONS)
    _state: NestingState = field(default_factory=NestingState, repr=False)

    @property
    def polling(self) -> bool:
        return self._state.polling

    @property
    def suppress_nested(self) -> bool:
        return self._state.suppress_nested

    @contextmanager
    def polling_scope(self) -> Iterator[None]:
        """Mark this thread as inside a poll loop for the duration of the block."""
        prev = self._state.polling
        self._state.polling = True
        try:
            yield
        finally:
            self._state.polling = prev

    @contextmanager
    def final_attempt(self) -> Iterator[None]:
        """Nested waits run their action once and return it as is."""
        prev = self._state.suppress_nested
        self._state.suppress_nested = True
        try:
            yield
        finally:
            self._state.suppress_nested = prev

    def with_config(self, **overrides: Any) -> "ExecutionContext":
        """Copy sharing this context's nesting state but with a different policy."""
        return ExecutionContext(
            driver=self.driver,
            config=self.config.with_overrides(**overrides),
            narrate=self.narrate,
            _state=self._state,
        )
