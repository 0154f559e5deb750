# webpoll/core/retry.py
from __future__ import annotations

"""Retry engine
---------------
Bounded-time polling around a short action. Each evaluation becomes an
Outcome (Success / Pending / Retryable / Fatal) and the loop matches on that:

  Idle -> Polling -> Succeeded
                  -> Exhausted (one last attempt, whose result or error is
                                what the caller sees)

Only one deadline clock runs per call chain. A retrying call made from inside
another poll loop evaluates its action once and hands failures back to the
outer loop as ForceRetry instead of starting its own timeout.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, TypeVar, Union

from webpoll.core.context import ExecutionContext, PollEvent
from webpoll.core.errors import FailureKind, ForceRetry, RetryTimeout, classify, is_retryable
from webpoll.utils.logger import get_logger
from webpoll.utils.timing import Stopwatch, sleep_ms

T = TypeVar("T")

log = get_logger(__name__)


# ---------- Outcomes ----------

@dataclass(frozen=True)
class Success:
    value: Any


@dataclass(frozen=True)
class Pending:
    """Action ran cleanly but returned None or False."""
    value: Any = None


@dataclass(frozen=True)
class Retryable:
    kind: FailureKind
    error: BaseException


@dataclass(frozen=True)
class Fatal:
    error: BaseException


Outcome = Union[Success, Pending, Retryable, Fatal]


def is_success_value(value: Any) -> bool:
    """None and False mean "not yet"; everything else (including "" and 0) is a result."""
    return value is not None and value is not False


def evaluate(action: Callable[[], Any], retryable: Iterable[FailureKind]) -> Outcome:
    """Run `action` once and classify what happened."""
    try:
        value = action()
    except Exception as exc:
        if is_retryable(exc, retryable):
            return Retryable(classify(exc), exc)
        return Fatal(exc)
    if is_success_value(value):
        return Success(value)
    return Pending(value)


def _log_poll(event: PollEvent) -> None:
    outcome = event.outcome
    if isinstance(outcome, Retryable):
        detail = f"{outcome.kind.value}: {outcome.error.__class__.__name__}"
    else:
        detail = f"returned {outcome.value!r}"
    log.debug(f"poll #{event.attempt} {event.description} ({event.elapsed_ms} ms) -> {detail}")


# ---------- Engine ----------

def retry(
    ctx: ExecutionContext,
    action: Callable[[], T],
    *,
    timeout_ms: Optional[int] = None,
    interval_ms: Optional[int] = None,
    retryable: Optional[Iterable[FailureKind]] = None,
    description: Optional[str] = None,
) -> T:
    """
    Evaluate `action` until it returns something other than None/False.

    Failures whose kind is in the retryable allow-list count as "not yet";
    any other exception propagates on first occurrence. When the budget runs
    out, `action` runs one final time with nested waits suppressed and its
    result (or exception) is returned (or raised) unchanged.
    """
    cfg = ctx.config.with_overrides(timeout_ms=timeout_ms, interval_ms=interval_ms, retryable=retryable)
    desc = description or getattr(action, "__name__", "action")

    if ctx.polling:
        if ctx.suppress_nested:
            return action()
        outcome = evaluate(action, cfg.retryable)
        if isinstance(outcome, Success):
            return outcome.value
        if isinstance(outcome, Fatal):
            raise outcome.error
        if isinstance(outcome, Retryable):
            raise ForceRetry(f"Inside another wait ({desc}). Forcing retry.") from outcome.error
        raise ForceRetry(f"Inside another wait ({desc}). Forcing retry.")

    hook = cfg.on_poll or _log_poll
    with ctx.polling_scope():
        attempt = 0
        with Stopwatch() as sw:
            while True:
                attempt += 1
                outcome = evaluate(action, cfg.retryable)
                if isinstance(outcome, Success):
                    return outcome.value
                if isinstance(outcome, Fatal):
                    raise outcome.error
                elapsed = sw.elapsed_ms()
                exhausted = elapsed >= cfg.timeout_ms
                hook(PollEvent(description=desc, attempt=attempt, elapsed_ms=elapsed, outcome=outcome, final=exhausted))
                if exhausted:
                    break
                sleep_ms(cfg.interval_ms)

        log.debug(f"{desc}: gave up after {attempt} attempt(s) / {cfg.timeout_ms} ms; final attempt")
        with ctx.final_attempt():
            return action()


def retry_or_default(
    ctx: ExecutionContext,
    action: Callable[[], T],
    default: Any,
    **kwargs: Any,
) -> Any:
    """
    Soft variant of retry(): returns `default` instead of raising when the
    final attempt fails with a retryable kind, or when it returns None/False.
    Non-retryable errors still propagate.
    """
    if ctx.polling and not ctx.suppress_nested:
        # Nested: let the outer loop decide; defaults only apply at the top.
        return retry(ctx, action, **kwargs)
    retryable = kwargs.get("retryable")
    kinds = frozenset(retryable) if retryable is not None else ctx.config.retryable
    try:
        value = retry(ctx, action, **kwargs)
    except Exception as exc:
        if is_retryable(exc, kinds):
            log.debug(f"{kwargs.get('description') or 'action'}: using default {default!r} after {exc.__class__.__name__}")
            return default
        raise
    return value if is_success_value(value) else default


def wait_until(
    ctx: ExecutionContext,
    predicate: Callable[[], T],
    *,
    description: Optional[str] = None,
    **kwargs: Any,
) -> T:
    """retry() that raises RetryTimeout when the final attempt is still falsy."""
    cfg = ctx.config.with_overrides(timeout_ms=kwargs.get("timeout_ms"))
    desc = description or getattr(predicate, "__name__", "condition")
    value = retry(ctx, predicate, description=desc, **kwargs)
    if not is_success_value(value):
        raise RetryTimeout(desc, cfg.timeout_ms)
    return value


__all__ = [
    "Success",
    "Pending",
    "Retryable",
    "Fatal",
    "Outcome",
    "evaluate",
    "is_success_value",
    "retry",
    "retry_or_default",
    "wait_until",
]
