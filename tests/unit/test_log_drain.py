import pytest

from webpoll.core.browser import LogEntry
from webpoll.core.log_drain import has_failures, retry_until, retry_until_log_pass, simulated_run

from tests.fakes import perf_entry


def _methods(entries):
    return [e.message["message"]["method"] for e in entries]


def _assert_request_sent(entries):
    assert "Network.requestWillBeSent" in _methods(entries), "request was not sent"


def test_log_drain_accumulates_until_message_arrives(ctx, driver):
    driver.log_batches = [
        [perf_entry("Page.loadEventFired", 1)],
        [perf_entry("Network.dataReceived", 2)],
        [perf_entry("Network.requestWillBeSent", 3)],
    ]
    logs = []
    retry_until_log_pass(ctx, logs, _assert_request_sent, timeout_ms=2000, interval_ms=5)

    assert driver.log_reads == 3
    assert _methods(logs) == ["Page.loadEventFired", "Network.dataReceived", "Network.requestWillBeSent"]
    assert all(isinstance(e, LogEntry) for e in logs)


def test_log_drain_fails_honestly_after_timeout(ctx, driver):
    driver.log_batches = [[perf_entry("Page.loadEventFired")]]
    logs = []
    with pytest.raises(AssertionError, match="request was not sent"):
        retry_until_log_pass(ctx, logs, _assert_request_sent, timeout_ms=50, interval_ms=5)
    assert driver.log_reads > 1
    assert _methods(logs) == ["Page.loadEventFired"]


def test_log_drain_returns_body_result(ctx, driver):
    driver.log_batches = [[perf_entry("Network.requestWillBeSent")]]
    assert retry_until_log_pass(ctx, [], lambda entries: len(entries), timeout_ms=50) == 1


def test_custom_reader(ctx):
    batches = [[], [LogEntry(0, "INFO", "ready")]]
    reads = []

    def reader(c, log_type):
        reads.append(log_type)
        return batches.pop(0) if batches else []

    def body(entries):
        assert [e.message for e in entries] == ["ready"]

    logs = []
    retry_until_log_pass(ctx, logs, body, timeout_ms=500, interval_ms=5, log_type="browser", reader=reader)
    assert reads == ["browser", "browser"]


def test_simulated_run_records_outcomes():
    def failing():
        assert False, "nope"

    def erroring():
        raise KeyError("x")

    assert [r.type for r in simulated_run(failing)] == ["fail"]
    assert [r.type for r in simulated_run(erroring)] == ["error"]
    assert [r.type for r in simulated_run(lambda: None)] == ["pass"]
    assert has_failures(simulated_run(failing))
    assert not has_failures(simulated_run(lambda: None))


def test_retry_until_reads_before_each_check():
    state = {"n": 0}

    def reader():
        state["n"] += 1
        return state["n"]

    result = retry_until(reader, lambda n: n < 4, lambda n: n * 10, timeout_ms=1000, interval_ms=1)
    assert result == 40
