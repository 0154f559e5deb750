from selenium import webdriver

from webpoll import driver as driver_mod
from webpoll.utils.config import BrowserType, Settings

from tests.fakes import FakeDriver


def test_chrome_options_from_settings():
    opts = driver_mod._options(Settings(HEADLESS=True, WINDOW_WIDTH=800, WINDOW_HEIGHT=600, ENABLE_PERFORMANCE_LOGS=True))
    assert "--headless=new" in opts.arguments
    assert "--window-size=800,600" in opts.arguments
    assert opts.capabilities["goog:loggingPrefs"]["performance"] == "ALL"


def test_firefox_options_skip_chromium_log_prefs():
    opts = driver_mod._options(Settings(BROWSER_TYPE=BrowserType.firefox, HEADLESS=True, ENABLE_PERFORMANCE_LOGS=True))
    assert "-headless" in opts.arguments
    assert "goog:loggingPrefs" not in opts.capabilities


def test_remote_url_builds_remote_session(monkeypatch):
    made = {}

    def fake_remote(command_executor, options):
        made["url"] = command_executor
        made["options"] = options
        return FakeDriver()

    monkeypatch.setattr(webdriver, "Remote", fake_remote)
    d = driver_mod.create_driver(Settings(REMOTE_URL="http://grid:4444/wd/hub", IMPLICIT_WAIT_MS=250))
    assert made["url"] == "http://grid:4444/wd/hub"
    assert d.implicit_wait_s == 0.25
