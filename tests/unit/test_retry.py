import threading

import pytest
from selenium.common.exceptions import (
    ElementClickInterceptedException,
    ElementNotInteractableException,
    NoSuchElementException,
    StaleElementReferenceException,
    TimeoutException,
)

from webpoll.core.context import ExecutionContext, RetryConfig
from webpoll.core.errors import FailureKind, ForceRetry, RetryTimeout
from webpoll.core.retry import Pending, Retryable, retry, retry_or_default, wait_until
from webpoll.utils.timing import Stopwatch


def _missing():
    raise NoSuchElementException("x")


RETRYABLE = [
    NoSuchElementException,
    StaleElementReferenceException,
    ElementNotInteractableException,
    ElementClickInterceptedException,
    TimeoutException,
]


@pytest.mark.parametrize("exc_cls", RETRYABLE)
def test_exhausted_retry_surfaces_exact_error(ctx, exc_cls):
    calls = []

    def probe():
        calls.append(1)
        raise exc_cls("boom")

    with Stopwatch() as sw:
        with pytest.raises(exc_cls):
            retry(ctx, probe, timeout_ms=100)
    assert sw.elapsed_ms() >= 100
    assert len(calls) > 1
    assert not ctx.polling and not ctx.suppress_nested


@pytest.mark.parametrize("exc_cls", RETRYABLE)
def test_success_after_failures_returns_value_before_timeout(ctx, exc_cls):
    attempts = []

    def probe():
        attempts.append(1)
        if len(attempts) < 3:
            raise exc_cls("not yet")
        return "done"

    with Stopwatch() as sw:
        assert retry(ctx, probe, timeout_ms=2000) == "done"
    assert len(attempts) == 3
    assert sw.elapsed_ms() < 2000


def test_fatal_error_propagates_on_first_attempt(ctx):
    attempts = []

    def probe():
        attempts.append(1)
        raise KeyError("logic bug")

    with pytest.raises(KeyError):
        retry(ctx, probe, timeout_ms=1000)
    assert attempts == [1]
    assert not ctx.polling


def test_empty_string_and_zero_are_results(ctx):
    assert retry(ctx, lambda: "") == ""
    assert retry(ctx, lambda: 0) == 0


def test_falsy_result_after_budget_is_returned(ctx):
    assert retry(ctx, lambda: False, timeout_ms=50) is False
    assert retry(ctx, lambda: None, timeout_ms=50) is None


def test_nested_retry_uses_outer_clock_only(ctx):
    inner_calls = []

    def inner():
        inner_calls.append(1)
        return False

    with Stopwatch() as sw:
        result = retry(ctx, lambda: retry(ctx, inner, timeout_ms=5000), timeout_ms=150)
    assert result is False
    assert sw.elapsed_ms() < 2000
    assert len(inner_calls) > 1


def test_nested_retry_surfaces_inner_error_kind(ctx):
    def inner():
        raise StaleElementReferenceException("gone")

    with Stopwatch() as sw:
        with pytest.raises(StaleElementReferenceException):
            retry(ctx, lambda: retry(ctx, inner, timeout_ms=5000), timeout_ms=100)
    assert sw.elapsed_ms() < 2000


def test_nested_scope_converts_failure_to_force_retry(ctx):
    with ctx.polling_scope():
        with pytest.raises(ForceRetry) as exc_info:
            retry(ctx, lambda: False)
        assert isinstance(retry(ctx, lambda: "ok"), str)
        with pytest.raises(ForceRetry) as chained:
            retry(ctx, _missing)
    assert exc_info.value.kind is FailureKind.FORCE_RETRY
    assert isinstance(chained.value.__cause__, NoSuchElementException)


def test_force_retry_is_retryable_even_when_not_listed(ctx):
    attempts = []

    def probe():
        attempts.append(1)
        if len(attempts) == 1:
            raise ForceRetry("again")
        return True

    assert retry(ctx, probe, retryable=[]) is True
    assert len(attempts) == 2


def test_custom_allow_list_makes_kind_fatal(ctx):
    attempts = []

    def probe():
        attempts.append(1)
        raise StaleElementReferenceException("gone")

    with pytest.raises(StaleElementReferenceException):
        retry(ctx, probe, retryable=[FailureKind.NOT_FOUND], timeout_ms=500)
    assert attempts == [1]


def test_poll_hook_sees_each_failed_attempt(driver):
    events = []
    ctx = ExecutionContext(
        driver=driver,
        config=RetryConfig(timeout_ms=60, interval_ms=10, on_poll=events.append),
        narrate=False,
    )
    answers = iter([None, NoSuchElementException("x"), "ok"])

    def probe():
        a = next(answers)
        if isinstance(a, Exception):
            raise a
        return a

    assert retry(ctx, probe, description="probe") == "ok"
    assert [e.attempt for e in events] == [1, 2]
    assert isinstance(events[0].outcome, Pending)
    assert isinstance(events[1].outcome, Retryable)
    assert events[1].outcome.kind is FailureKind.NOT_FOUND
    assert all(e.description == "probe" for e in events)


def test_retry_or_default_returns_default(ctx):
    def probe():
        raise NoSuchElementException("missing")

    assert retry_or_default(ctx, probe, "fallback", timeout_ms=30) == "fallback"
    assert retry_or_default(ctx, lambda: None, "", timeout_ms=30) == ""


def test_retry_or_default_keeps_fatal_errors(ctx):
    with pytest.raises(ZeroDivisionError):
        retry_or_default(ctx, lambda: 1 / 0, None)


def test_wait_until_raises_timeout(ctx):
    with pytest.raises(RetryTimeout) as exc_info:
        wait_until(ctx, lambda: False, description="never", timeout_ms=30)
    assert exc_info.value.kind is FailureKind.TIMEOUT
    assert "never" in str(exc_info.value)


def test_nesting_guard_is_per_thread(ctx):
    entered = threading.Event()
    release = threading.Event()
    seen = {}

    def outer():
        def probe():
            entered.set()
            release.wait(2)
            return True
        retry(ctx, probe, timeout_ms=1000)

    t = threading.Thread(target=outer)
    t.start()
    entered.wait(2)
    seen["polling"] = ctx.polling
    # A top-level call from this thread still gets its own loop
    seen["value"] = retry(ctx, lambda: "mine")
    release.set()
    t.join(2)

    assert seen == {"polling": False, "value": "mine"}


def test_with_config_shares_nesting_state(ctx):
    other = ctx.with_config(timeout_ms=5)
    with ctx.polling_scope():
        assert other.polling
    assert other.config.timeout_ms == 5
    assert ctx.config.timeout_ms == 200
