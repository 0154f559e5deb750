# webpoll/core/browser.py
from __future__ import annotations

"""Driver-level operations
--------------------------
Navigation, scripts, windows/frames, browser logs and screenshots. Most of
these are immediate pass-throughs to the driver; the ones that wait for the
browser to catch up (window switching, frame switching, url checks) poll
through the retry engine.
"""

import json
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from selenium.common.exceptions import WebDriverException

from webpoll.core.context import ExecutionContext
from webpoll.core.retry import retry, retry_or_default, wait_until
from webpoll.selectors.locator import LocatorLike, describe, exists, resolve
from webpoll.utils.config import get_settings
from webpoll.utils.logger import get_logger
from webpoll.utils.timing import measure

log = get_logger(__name__)


# ---------- Navigation ----------

def to(ctx: ExecutionContext, url: str) -> None:
    """Navigate to `url`, as if typed in the address bar."""
    if ctx.narrate:
        log.info(f"to {url}")
    ctx.driver.get(url)


def refresh(ctx: ExecutionContext) -> None:
    if ctx.narrate:
        log.info("refresh")
    ctx.driver.refresh()


def current_url(ctx: ExecutionContext) -> str:
    return ctx.driver.current_url


def current_url_contains(ctx: ExecutionContext, substr: str) -> bool:
    """Polls until the current url contains `substr`; False on timeout."""
    if ctx.narrate:
        log.info(f"current-url-contains? {substr!r}")
    result = retry_or_default(
        ctx,
        lambda: substr in (ctx.driver.current_url or ""),
        False,
        description=f"url contains {substr!r}",
    )
    if ctx.narrate:
        log.info(f"  -> {result!r}")
    return result


def execute_script(ctx: ExecutionContext, js: str, *args: Any) -> Any:
    """
    Evaluate `js` in the page. Arguments are available as `arguments[i]` and
    must be numbers, booleans, strings, elements or lists of those.
    Immediate: no polling.
    """
    return ctx.driver.execute_script(str(js), *args)


def implicit_wait(ctx: ExecutionContext, ms: int) -> None:
    """Set how long the driver itself blocks on element lookups."""
    ctx.driver.implicitly_wait(ms / 1000.0)


def quit(ctx: ExecutionContext) -> None:
    ctx.driver.quit()


def delete_all_cookies(ctx: ExecutionContext) -> None:
    """Deletes cookies for the domain the browser is currently on."""
    ctx.driver.delete_all_cookies()


# ---------- Windows & frames ----------

def all_windows(ctx: ExecutionContext) -> list[str]:
    return list(ctx.driver.window_handles)


def active_window(ctx: ExecutionContext) -> str:
    return ctx.driver.current_window_handle


def switch_to_window(ctx: ExecutionContext, handle: str) -> None:
    """Wait until `handle` is a live window, then focus it."""
    if ctx.narrate:
        log.info(f"switch-to-window {handle!r}")
    retry(ctx, lambda: handle in all_windows(ctx), description=f"window {handle!r}")
    ctx.driver.switch_to.window(handle)


def switch_to_frame(ctx: ExecutionContext, frame: LocatorLike) -> None:
    """Target subsequent lookups at the given frame/iframe."""
    retry(ctx, lambda: exists(ctx.driver, frame), description=f"frame {describe(frame)}")
    ctx.driver.switch_to.frame(resolve(ctx.driver, frame))


def switch_to_main_page(ctx: ExecutionContext) -> None:
    ctx.driver.switch_to.default_content()


@contextmanager
def in_new_window(ctx: ExecutionContext, trigger: Callable[[], Any], *, auto_close: bool = False) -> Iterator[str]:
    """
    Run `trigger` (which opens a window), switch into the new window for the
    body of the block, then return to the original window.

    With auto_close the page is expected to close itself and we only wait for
    that; otherwise the new window is closed on exit.
    """
    prev = active_window(ctx)
    old = set(all_windows(ctx))
    trigger()
    handle = wait_until(
        ctx,
        lambda: next(iter(set(all_windows(ctx)) - old), None),
        description="new window to open",
    )
    switch_to_window(ctx, handle)
    try:
        yield handle
    finally:
        try:
            if auto_close:
                wait_until(ctx, lambda: len(set(all_windows(ctx))) == len(old), description="new window to close")
            else:
                ctx.driver.close()
        finally:
            switch_to_window(ctx, prev)


def window_size(ctx: ExecutionContext) -> dict:
    size = retry(ctx, lambda: ctx.driver.get_window_size(), description="window size")
    return {"width": size["width"], "height": size["height"]}


def window_resize(ctx: ExecutionContext, size: dict) -> None:
    if ctx.narrate:
        log.info(f"window-resize {size['width']}x{size['height']}")
    ctx.driver.set_window_size(size["width"], size["height"])


@contextmanager
def with_window_size(ctx: ExecutionContext, size: dict) -> Iterator[None]:
    """Temporarily resize the window; the previous size is restored on exit."""
    previous = window_size(ctx)
    window_resize(ctx, size)
    try:
        yield
    finally:
        window_resize(ctx, previous)


# ---------- Browser logs ----------

@dataclass(frozen=True)
class LogEntry:
    timestamp: int
    level: str
    message: Any

    @classmethod
    def from_raw(cls, raw: dict) -> "LogEntry":
        return cls(
            timestamp=int(raw.get("timestamp", 0)),
            level=str(raw.get("level", "")),
            message=raw.get("message"),
        )


def read_logs(ctx: ExecutionContext, log_type: str = "performance") -> list[LogEntry]:
    """
    Fetch browser-side logs of `log_type`.

    The browser discards entries once they are read, so two calls in a row
    usually return different results. See log_drain.retry_until_log_pass for
    accumulating them while waiting on an assertion.
    """
    return [LogEntry.from_raw(raw) for raw in ctx.driver.get_log(log_type) or []]


def read_json_logs(ctx: ExecutionContext, log_type: str = "performance") -> list[LogEntry]:
    """read_logs() with each message parsed as JSON (Chrome performance logs)."""
    out: list[LogEntry] = []
    for entry in read_logs(ctx, log_type):
        message = entry.message
        if isinstance(message, str):
            try:
                message = json.loads(message)
            except ValueError:
                log.debug(f"Non-JSON {log_type} log message kept as text: {message[:80]!r}")
        out.append(LogEntry(timestamp=entry.timestamp, level=entry.level, message=message))
    return out


# ---------- Screenshots ----------

def take_screenshot(ctx: ExecutionContext, destination: Optional[Path | str] = None) -> bytes:
    """PNG bytes of the active window, optionally also written to `destination`."""
    png = ctx.driver.get_screenshot_as_png()
    if destination is not None:
        out = Path(destination)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(png)
        log.info(f"Screenshot written to {out}")
    return png


def _safe_name(base: str) -> str:
    return "".join(ch if ch.isalnum() or ch in ("-", "_") else "_" for ch in base)


@measure("screenshot")
def screenshot(ctx: ExecutionContext, name: str, directory: Optional[Path | str] = None) -> Path:
    """Save `<name>.png` under `directory` (default SCREENSHOT_DIR) and return its path."""
    root = Path(directory) if directory is not None else get_settings().SCREENSHOT_DIR
    out = root / f"{_safe_name(name)}.png"
    take_screenshot(ctx, out)
    return out


@contextmanager
def screenshot_on_failure(ctx: ExecutionContext, name: str, directory: Optional[Path | str] = None) -> Iterator[None]:
    """
    Save `<name>-failed.png` if the block raises, then re-raise.

        with screenshot_on_failure(ctx, "checkout"):
            actions.click(ctx, "#pay")

    A screenshot that cannot be taken is logged; the block's error still wins.
    """
    try:
        yield
    except Exception:
        try:
            screenshot(ctx, f"{name}-failed", directory)
        except (WebDriverException, OSError) as exc:
            log.warning(f"Could not save failure screenshot: {exc.__class__.__name__}: {exc}")
        raise
