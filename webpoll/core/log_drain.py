# webpoll/core/log_drain.py
from __future__ import annotations

"""Log-drain retry
------------------
Browser performance/network logs arrive asynchronously and are consumed on
read. retry_until_log_pass() keeps draining them into a caller-owned list and
re-checks an assertion block against everything collected so far, until the
block passes or the budget runs out.

    logs = []
    retry_until_log_pass(ctx, logs, lambda entries: _assert_request_sent(entries))
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, TypeVar

from webpoll.core.browser import LogEntry, read_json_logs
from webpoll.core.context import ExecutionContext
from webpoll.utils.config import get_settings
from webpoll.utils.logger import get_logger
from webpoll.utils.timing import Stopwatch, sleep_ms

T = TypeVar("T")

log = get_logger(__name__)


@dataclass(frozen=True)
class TestReport:
    """One recorded outcome of a simulated run: "pass", "fail" or "error"."""
    __test__ = False  # not a pytest class

    type: str
    error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.type in ("fail", "error")


def simulated_run(body: Callable[..., Any], *args: Any) -> List[TestReport]:
    """
    Run `body(*args)` and record its outcome instead of raising.
    AssertionError is a "fail"; any other exception is an "error".
    """
    try:
        body(*args)
    except AssertionError as exc:
        return [TestReport("fail", exc)]
    except Exception as exc:
        return [TestReport("error", exc)]
    return [TestReport("pass")]


def has_failures(reports: List[TestReport]) -> bool:
    return any(r.failed for r in reports)


def retry_until(
    reader: Callable[[], T],
    failing: Callable[[T], bool],
    body: Callable[[T], Any],
    *,
    timeout_ms: int,
    interval_ms: int,
) -> Any:
    """
    Read, then check `failing(state)`. While it reports failures and the
    budget remains, sleep and read again. The last run of `body(state)` is a
    real one, so its result or exception reaches the caller.
    """
    with Stopwatch() as sw:
        state = reader()
        while failing(state):
            if sw.elapsed_ms() > timeout_ms:
                log.debug(f"log drain gave up after {sw.elapsed_ms()} ms")
                break
            sleep_ms(interval_ms)
            state = reader()
    return body(state)


def retry_until_log_pass(
    ctx: ExecutionContext,
    logs: List[LogEntry],
    body: Callable[[List[LogEntry]], Any],
    *,
    timeout_ms: Optional[int] = None,
    interval_ms: Optional[int] = None,
    log_type: str = "performance",
    reader: Optional[Callable[[ExecutionContext, str], List[LogEntry]]] = None,
) -> Any:
    """
    Drain `log_type` logs into `logs` and run `body(logs)` until it passes.

    NOTE: this destructively consumes the browser's log buffer. `logs` only
    ever grows, so an entry drained on the first poll is still visible to the
    assertion on the last.
    """
    read = reader or read_json_logs
    timeout = timeout_ms if timeout_ms is not None else ctx.config.timeout_ms
    interval = interval_ms if interval_ms is not None else get_settings().LOG_DRAIN_INTERVAL_MS

    def _drain() -> List[LogEntry]:
        fresh = read(ctx, log_type)
        logs.extend(fresh)
        log.debug(f"drained {len(fresh)} {log_type} log entries ({len(logs)} total)")
        return logs

    if ctx.narrate:
        log.info(f"read {log_type} logs until assertions pass")
    return retry_until(
        _drain,
        lambda entries: has_failures(simulated_run(body, entries)),
        body,
        timeout_ms=timeout,
        interval_ms=interval,
    )


__all__ = ["TestReport", "simulated_run", "has_failures", "retry_until", "retry_until_log_pass"]
