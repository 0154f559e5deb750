# webpoll/utils/config.py
from __future__ import annotations

import functools
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------- Enums ----------

class BrowserType(str, Enum):
    chrome = "chrome"
    firefox = "firefox"
    edge = "edge"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# ---------- Settings ----------

class Settings(BaseSettings):
    """
    Central configuration for webpoll.

    Values load in this order of precedence:
      1) Environment variables (prefixed WEBPOLL_)
      2) .env file in project root
      3) Defaults below
    """

    # ---- Polling ----
    DEFAULT_TIMEOUT_MS: int = Field(default=15000, ge=0, description="Budget for one polling call")
    DEFAULT_INTERVAL_MS: int = Field(default=0, ge=0, description="Sleep between polls; 0 relies on implicit wait")
    IMPLICIT_WAIT_MS: int = Field(default=0, ge=0, description="Driver-side element lookup wait")
    LOG_DRAIN_INTERVAL_MS: int = Field(default=500, ge=0)

    # ---- Locators ----
    LOCATOR_CSS_FALLBACK: bool = Field(
        default=False,
        description="Treat an unrecognised single-key locator dict as a raw CSS selector",
    )

    # ---- Browser ----
    BROWSER_TYPE: BrowserType = Field(default=BrowserType.chrome)
    HEADLESS: bool = Field(default=True)
    REMOTE_URL: Optional[str] = Field(default=None, description="Selenium hub URL for remote sessions")
    WINDOW_WIDTH: int = Field(default=1366, ge=320, le=7680)
    WINDOW_HEIGHT: int = Field(default=768, ge=320, le=4320)
    ENABLE_PERFORMANCE_LOGS: bool = Field(default=False)

    # ---- Artifacts ----
    SCREENSHOT_DIR: Path = Field(default=Path("./screenshots"))
    SCENARIOS_DIR: Path = Field(default=Path("./scenarios"))

    # ---- Logging ----
    LOG_LEVEL: LogLevel = Field(default=LogLevel.INFO)
    LOG_TO_FILE: bool = Field(default=False)
    LOG_FILE: Path = Field(default=Path("./webpoll.log"))
    COLORIZED_OUTPUT: bool = Field(default=True)
    NARRATE_ACTIONS: bool = Field(default=True, description="Log each action at INFO before polling it")

    model_config = SettingsConfigDict(
        env_prefix="WEBPOLL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("SCREENSHOT_DIR", "SCENARIOS_DIR", "LOG_FILE", mode="before")
    @classmethod
    def _coerce_to_path(cls, v):
        if isinstance(v, Path):
            return v
        return Path(str(v)) if v is not None else v

    @field_validator("SCREENSHOT_DIR", "SCENARIOS_DIR", "LOG_FILE", mode="after")
    @classmethod
    def _absolutize(cls, v: Path, info):
        return v if v.is_absolute() else Path.cwd() / v

    @field_validator("REMOTE_URL")
    @classmethod
    def _blank_remote_is_none(cls, v: Optional[str]):
        if v is None:
            return None
        v = v.strip()
        return v or None

    def ensure_dirs(self) -> None:
        """Create the log directory when file logging is on (idempotent)."""
        if self.LOG_TO_FILE:
            self.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

    def window_size(self) -> dict:
        return {"width": self.WINDOW_WIDTH, "height": self.WINDOW_HEIGHT}


# --------- Public accessor (memoized) ---------

@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache settings once per process.
    Call `get_settings.cache_clear()` if you need to reload after changing env.
    """
    s = Settings()
    s.ensure_dirs()
    return s

