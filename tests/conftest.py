import pytest

from webpoll.core.context import ExecutionContext, RetryConfig
from webpoll.utils.config import get_settings

from tests.fakes import FakeDriver


@pytest.fixture(autouse=True)
def _fast_settings(monkeypatch, tmp_path):
    # Short budgets so timeouts are observable without slowing the suite
    monkeypatch.setenv("WEBPOLL_DEFAULT_TIMEOUT_MS", "200")
    monkeypatch.setenv("WEBPOLL_DEFAULT_INTERVAL_MS", "10")
    monkeypatch.setenv("WEBPOLL_LOG_DRAIN_INTERVAL_MS", "10")
    monkeypatch.setenv("WEBPOLL_NARRATE_ACTIONS", "false")
    monkeypatch.setenv("WEBPOLL_SCREENSHOT_DIR", str(tmp_path / "shots"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def ctx(driver):
    return ExecutionContext(driver=driver, config=RetryConfig(timeout_ms=200, interval_ms=10), narrate=False)
