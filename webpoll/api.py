# webpoll/api.py
from __future__ import annotations

"""Ambient API
--------------
The core operations without the explicit context argument. Each wrapper looks
up the ExecutionContext for `driver=` (or the ambient driver bound through
webpoll.session) and delegates:

    from webpoll import api
    from webpoll.session import driver_scope

    with driver_scope(driver):
        api.to("https://example.com/login")
        api.fill_form({"#user": "ana", "#pass": "s3cret"}, {"#submit": api.click})
        assert api.text_equals("h1", "Welcome")

Threads running in parallel must pass driver= on every call.
"""

import functools
from typing import Any, Callable, TypeVar

from webpoll.core import actions, browser, forms, log_drain
from webpoll.core.context import ExecutionContext
from webpoll.session import context_for

T = TypeVar("T")


def _ambient(fn: Callable[..., T]) -> Callable[..., T]:
    @functools.wraps(fn)
    def wrapper(*args: Any, driver: Any = None, **kwargs: Any) -> T:
        return fn(context_for(driver), *args, **kwargs)
    wrapper.core = fn
    return wrapper


def _field_action(fn: Callable[..., Any]) -> Callable[[ExecutionContext, Any], Any]:
    """
    Adapt an ambient field value to the form filler's fn(ctx, locator) shape.

    Wrappers built here (api.click, api.toggle, ...) hand over their core
    function. Any other callable is invoked with the locator alone.
    """
    core = getattr(fn, "core", None)
    if core is not None:
        return core
    return lambda ctx, loc: fn(loc)


def fill_form(fields, *more_fields, driver: Any = None) -> None:
    """
    Ambient forms.fill_form(). Callable values take the locator only, as in
    {"#terms": api.click} or {"#note": lambda loc: api.send_keys(loc, "hi")}.
    """
    groups = [{loc: (_field_action(v) if callable(v) else v) for loc, v in g.items()} for g in (fields, *more_fields)]
    forms.fill_form(context_for(driver), *groups)


# ---------- Element actions ----------

exists = _ambient(actions.exists)
is_on_screen = _ambient(actions.is_on_screen)
scroll_to = _ambient(actions.scroll_to)
wait_until_clickable = _ambient(actions.wait_until_clickable)
click = _ambient(actions.click)
submit = _ambient(actions.submit)
toggle = _ambient(actions.toggle)
send_keys = _ambient(actions.send_keys)
input_text = _ambient(actions.input_text)
select_by_text = _ambient(actions.select_by_text)
select_by_value = _ambient(actions.select_by_value)
options = _ambient(actions.options)
click_when_visible = _ambient(actions.click_when_visible)
set_checkbox = _ambient(actions.set_checkbox)
allow_backspace = _ambient(actions.allow_backspace)

# ---------- Queries ----------

tag = _ambient(actions.tag)
text = _ambient(actions.text)
value = _ambient(actions.value)
attribute = _ambient(actions.attribute)
classes = _ambient(actions.classes)
selected = _ambient(actions.selected)
visible = _ambient(actions.visible)
invisible = _ambient(actions.invisible)
has_class = _ambient(actions.has_class)
has_not_class = _ambient(actions.has_not_class)
text_equals = _ambient(actions.text_equals)
value_equals = _ambient(actions.value_equals)
contains_text = _ambient(actions.contains_text)
num_elements_equals = _ambient(actions.num_elements_equals)
element_matches = _ambient(actions.element_matches)

# ---------- Browser ----------

to = _ambient(browser.to)
refresh = _ambient(browser.refresh)
current_url = _ambient(browser.current_url)
current_url_contains = _ambient(browser.current_url_contains)
execute_script = _ambient(browser.execute_script)
implicit_wait = _ambient(browser.implicit_wait)
quit = _ambient(browser.quit)
delete_all_cookies = _ambient(browser.delete_all_cookies)
all_windows = _ambient(browser.all_windows)
active_window = _ambient(browser.active_window)
switch_to_window = _ambient(browser.switch_to_window)
switch_to_frame = _ambient(browser.switch_to_frame)
switch_to_main_page = _ambient(browser.switch_to_main_page)
in_new_window = _ambient(browser.in_new_window)
window_size = _ambient(browser.window_size)
window_resize = _ambient(browser.window_resize)
with_window_size = _ambient(browser.with_window_size)
read_logs = _ambient(browser.read_logs)
read_json_logs = _ambient(browser.read_json_logs)
take_screenshot = _ambient(browser.take_screenshot)
screenshot = _ambient(browser.screenshot)
screenshot_on_failure = _ambient(browser.screenshot_on_failure)

# ---------- Logs ----------

retry_until_log_pass = _ambient(log_drain.retry_until_log_pass)


__all__ = [
    "fill_form",
    "exists", "is_on_screen", "scroll_to", "wait_until_clickable", "click", "submit", "toggle",
    "send_keys", "input_text", "select_by_text", "select_by_value", "options",
    "click_when_visible", "set_checkbox", "allow_backspace",
    "tag", "text", "value", "attribute", "classes", "selected", "visible", "invisible",
    "has_class", "has_not_class", "text_equals", "value_equals", "contains_text",
    "num_elements_equals", "element_matches",
    "to", "refresh", "current_url", "current_url_contains", "execute_script", "implicit_wait",
    "quit", "delete_all_cookies", "all_windows", "active_window", "switch_to_window",
    "switch_to_frame", "switch_to_main_page", "in_new_window", "window_size", "window_resize",
    "with_window_size", "read_logs", "read_json_logs", "take_screenshot", "screenshot",
    "screenshot_on_failure",
    "retry_until_log_pass",
]
