# webpoll/driver.py
from __future__ import annotations

"""Driver factory
-----------------
Builds a Selenium WebDriver from Settings: local Chrome/Firefox/Edge, or a
Remote session when REMOTE_URL is set. Window size, headless mode, browser
log capture and implicit wait all come from configuration.
"""

from typing import Optional

from selenium import webdriver
from selenium.webdriver.remote.webdriver import WebDriver

from webpoll.utils.config import BrowserType, Settings, get_settings
from webpoll.utils.logger import get_logger

log = get_logger(__name__)


def _options(s: Settings):
    width, height = s.WINDOW_WIDTH, s.WINDOW_HEIGHT
    if s.BROWSER_TYPE is BrowserType.firefox:
        opts = webdriver.FirefoxOptions()
        if s.HEADLESS:
            opts.add_argument("-headless")
        opts.add_argument(f"--width={width}")
        opts.add_argument(f"--height={height}")
        return opts

    opts = webdriver.EdgeOptions() if s.BROWSER_TYPE is BrowserType.edge else webdriver.ChromeOptions()
    if s.HEADLESS:
        opts.add_argument("--headless=new")
    opts.add_argument(f"--window-size={width},{height}")
    if s.ENABLE_PERFORMANCE_LOGS:
        # Chromium only; read back through driver.get_log("performance")
        opts.set_capability("goog:loggingPrefs", {"browser": "ALL", "performance": "ALL"})
    return opts


def create_driver(settings: Optional[Settings] = None) -> WebDriver:
    """Start a browser according to `settings` (default: get_settings())."""
    s = settings or get_settings()
    opts = _options(s)

    if s.REMOTE_URL:
        log.info(f"Starting remote {s.BROWSER_TYPE.value} session at {s.REMOTE_URL}")
        driver = webdriver.Remote(command_executor=s.REMOTE_URL, options=opts)
    elif s.BROWSER_TYPE is BrowserType.firefox:
        log.info("Starting local firefox")
        driver = webdriver.Firefox(options=opts)
    elif s.BROWSER_TYPE is BrowserType.edge:
        log.info("Starting local edge")
        driver = webdriver.Edge(options=opts)
    else:
        log.info("Starting local chrome")
        driver = webdriver.Chrome(options=opts)

    if s.IMPLICIT_WAIT_MS:
        driver.implicitly_wait(s.IMPLICIT_WAIT_MS / 1000.0)
    return driver


__all__ = ["create_driver"]
