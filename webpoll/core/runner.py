# webpoll/core/runner.py
from __future__ import annotations

"""Scenario runner
------------------
Executes validated scenario steps through the action layer against one
driver and returns a small result dict. A failing step leaves a screenshot
behind under SCREENSHOT_DIR.
"""

from pathlib import Path
from typing import Any, Callable, Dict, Optional

from selenium.common.exceptions import WebDriverException

from webpoll.core import actions, browser, forms
from webpoll.core.context import ExecutionContext, RetryConfig
from webpoll.core.scenario_loader import (
    Scenario,
    StepAssertContainsText,
    StepAssertText,
    StepAssertUrlContains,
    StepAssertValue,
    StepAssertVisible,
    StepClick,
    StepFillForm,
    StepGoto,
    StepScreenshot,
    StepSelect,
    StepSendKeys,
    StepSwitchToWindow,
    StepWait,
    load_scenario,
)
from webpoll.utils.config import Settings, get_settings
from webpoll.utils.logger import attach_file_logger, detach_file_logger, get_logger, log_with_context
from webpoll.utils.timing import Stopwatch, sleep_ms


# ---------- Step handlers ----------

def _goto(ctx: ExecutionContext, sc: Scenario, step: StepGoto) -> None:
    browser.to(ctx, sc.url_for(step.url))


def _click(ctx: ExecutionContext, sc: Scenario, step: StepClick) -> None:
    actions.click(ctx, step.selector)


def _send_keys(ctx: ExecutionContext, sc: Scenario, step: StepSendKeys) -> None:
    actions.send_keys(ctx, step.selector, step.text)


def _fill_form(ctx: ExecutionContext, sc: Scenario, step: StepFillForm) -> None:
    forms.fill_form(ctx, *step.groups)


def _select(ctx: ExecutionContext, sc: Scenario, step: StepSelect) -> None:
    if step.text is not None:
        actions.select_by_text(ctx, step.selector, step.text)
    else:
        actions.select_by_value(ctx, step.selector, step.value)


def _assert_text(ctx: ExecutionContext, sc: Scenario, step: StepAssertText) -> None:
    if not actions.text_equals(ctx, step.selector, step.expect):
        raise AssertionError(f"Text of {step.selector} is {actions.text(ctx, step.selector)!r}, expected {step.expect!r}")


def _assert_contains_text(ctx: ExecutionContext, sc: Scenario, step: StepAssertContainsText) -> None:
    if not actions.contains_text(ctx, step.selector, step.expect):
        raise AssertionError(f"Text of {step.selector} does not contain {step.expect!r}")


def _assert_value(ctx: ExecutionContext, sc: Scenario, step: StepAssertValue) -> None:
    if not actions.value_equals(ctx, step.selector, step.expect):
        raise AssertionError(f"Value of {step.selector} is {actions.value(ctx, step.selector)!r}, expected {step.expect!r}")


def _assert_visible(ctx: ExecutionContext, sc: Scenario, step: StepAssertVisible) -> None:
    check = actions.visible if step.visible else actions.invisible
    if not check(ctx, step.selector):
        raise AssertionError(f"{step.selector} is not {'visible' if step.visible else 'hidden'}")


def _assert_url_contains(ctx: ExecutionContext, sc: Scenario, step: StepAssertUrlContains) -> None:
    if not browser.current_url_contains(ctx, step.text):
        raise AssertionError(f"URL {browser.current_url(ctx)!r} does not contain {step.text!r}")


def _switch_to_window(ctx: ExecutionContext, sc: Scenario, step: StepSwitchToWindow) -> None:
    handles = browser.all_windows(ctx)
    try:
        handle = handles[step.index]
    except IndexError:
        raise AssertionError(f"No window at index {step.index} ({len(handles)} open)") from None
    browser.switch_to_window(ctx, handle)


def _screenshot(ctx: ExecutionContext, sc: Scenario, step: StepScreenshot) -> None:
    browser.screenshot(ctx, f"{sc.name}-{step.name}")


def _wait(ctx: ExecutionContext, sc: Scenario, step: StepWait) -> None:
    sleep_ms(step.ms)


_HANDLERS: Dict[str, Callable[[ExecutionContext, Scenario, Any], None]] = {
    "goto": _goto,
    "click": _click,
    "send_keys": _send_keys,
    "fill_form": _fill_form,
    "select": _select,
    "assert_text": _assert_text,
    "assert_contains_text": _assert_contains_text,
    "assert_value": _assert_value,
    "assert_visible": _assert_visible,
    "assert_url_contains": _assert_url_contains,
    "switch_to_window": _switch_to_window,
    "screenshot": _screenshot,
    "wait": _wait,
}


# ---------- Runner ----------

class ScenarioRunner:
    """Runs scenarios against a driver, creating one per run when none is given."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        driver_factory: Optional[Callable[[], Any]] = None,
        screenshot_on_failure: bool = True,
    ):
        self.settings = settings or get_settings()
        self.driver_factory = driver_factory
        self.screenshot_on_failure = screenshot_on_failure
        self.log = get_logger(__name__)

    def _new_driver(self) -> Any:
        if self.driver_factory is not None:
            return self.driver_factory()
        from webpoll.driver import create_driver
        return create_driver(self.settings)

    def _failure_screenshot(self, ctx: ExecutionContext, sc: Scenario, idx: int) -> Optional[str]:
        if not self.screenshot_on_failure:
            return None
        try:
            return str(browser.screenshot(ctx, f"{sc.name}-step{idx}-failed", self.settings.SCREENSHOT_DIR))
        except (WebDriverException, OSError) as exc:
            self.log.warning(f"Could not save failure screenshot: {exc.__class__.__name__}: {exc}")
            return None

    def run(self, sc: Scenario, driver: Any = None, log_file: Optional[Path] = None) -> dict:
        """Execute every step of `sc`.

        Returns {"ok": bool, "scenario": name, "steps_run": n, "elapsed_ms": ms}
        plus "error", "error_type", "failed_step" and "screenshot" on failure.
        """
        owns_driver = driver is None
        drv = self._new_driver() if owns_driver else driver
        config = RetryConfig.from_settings(self.settings, timeout_ms=sc.timeout_ms)
        ctx = ExecutionContext(driver=drv, config=config, narrate=self.settings.NARRATE_ACTIONS)
        run_log = log_with_context(self.log, scenario=sc.name)
        handler = attach_file_logger(log_file) if log_file else None

        result: Dict[str, Any] = {"ok": True, "scenario": sc.name, "steps_run": 0}
        try:
            run_log.info(f"Starting scenario: {sc.name} (steps={len(sc.steps)})")
            with Stopwatch() as sw:
                for idx, step in enumerate(sc.steps, start=1):
                    step_log = log_with_context(run_log, scenario=sc.name, step_index=idx, action=step.action)
                    step_log.info(f"Step {idx}/{len(sc.steps)}: {step.name or step.action}")
                    step_ctx = ctx.with_config(timeout_ms=step.timeout_ms) if step.timeout_ms is not None else ctx
                    try:
                        _HANDLERS[step.action](step_ctx, sc, step)
                    except Exception as err:
                        if step.optional:
                            step_log.warning(f"Optional step failed, continuing: {err.__class__.__name__}: {err}")
                            continue
                        step_log.error(f"Step {idx} failed: {err.__class__.__name__}: {err}")
                        result.update(
                            ok=False,
                            error=str(err),
                            error_type=err.__class__.__name__,
                            failed_step={"index": idx, "action": step.action, "name": step.name},
                            screenshot=self._failure_screenshot(ctx, sc, idx),
                        )
                        break
                    result["steps_run"] = idx
            result["elapsed_ms"] = sw.elapsed_ms()
            run_log.info(f"Scenario {sc.name}: {'passed' if result['ok'] else 'FAILED'} in {result['elapsed_ms']} ms")
            return result
        finally:
            if owns_driver:
                drv.quit()
            if handler is not None:
                detach_file_logger(handler)


def run_scenario(scenario: Path | str | Scenario, driver: Any = None) -> dict:
    sc = load_scenario(scenario) if isinstance(scenario, (str, Path)) else scenario
    return ScenarioRunner(settings=get_settings()).run(sc, driver=driver)


__all__ = ["ScenarioRunner", "run_scenario"]
