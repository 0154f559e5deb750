from pathlib import Path

from webpoll.core.context import ExecutionContext, RetryConfig
from webpoll.core.errors import DEFAULT_RETRYABLE, FailureKind
from webpoll.utils.config import BrowserType, Settings, get_settings


def test_env_prefix_and_types(monkeypatch):
    monkeypatch.setenv("WEBPOLL_BROWSER_TYPE", "edge")
    monkeypatch.setenv("WEBPOLL_HEADLESS", "false")
    monkeypatch.setenv("WEBPOLL_REMOTE_URL", "   ")
    get_settings.cache_clear()
    s = get_settings()
    assert s.BROWSER_TYPE is BrowserType.edge
    assert s.HEADLESS is False
    assert s.REMOTE_URL is None
    assert get_settings() is s


def test_relative_paths_become_absolute():
    s = Settings(SCENARIOS_DIR="scenarios", LOG_FILE=Path("logs/run.log"))
    assert s.SCENARIOS_DIR.is_absolute() and s.SCENARIOS_DIR.name == "scenarios"
    assert s.LOG_FILE.is_absolute()


def test_retry_config_from_settings():
    cfg = RetryConfig.from_settings(Settings(DEFAULT_TIMEOUT_MS=750, DEFAULT_INTERVAL_MS=25))
    assert (cfg.timeout_ms, cfg.interval_ms) == (750, 25)
    assert cfg.retryable == DEFAULT_RETRYABLE

    tweaked = cfg.with_overrides(timeout_ms=None, retryable=[FailureKind.STALE])
    assert tweaked.timeout_ms == 750
    assert tweaked.retryable == frozenset({FailureKind.STALE})


def test_context_defaults_follow_settings(driver):
    ctx = ExecutionContext(driver=driver)
    assert ctx.config.timeout_ms == 200
    assert ctx.narrate is False
