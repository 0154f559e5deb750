# webpoll/core/actions.py
from __future__ import annotations

"""Element actions
------------------
Click, scroll, type, select and query elements. Every operation is the retry
engine wrapped around a short predicate that re-resolves the locator on each
attempt, so a stale handle from a re-render is simply looked up again.

Queries come in two flavours:
  - reads (text, value, attribute, tag, selected) return what is there as soon
    as the element resolves, or a default when it never does;
  - assertions (text_equals, contains_text, visible, ...) poll until true and
    return False on timeout instead of raising, so they sit directly inside a
    test's `assert`.
"""

from typing import Any, Callable, Optional, Sequence, Union

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.support.select import Select

from webpoll.core.browser import execute_script
from webpoll.core.context import ExecutionContext
from webpoll.core.retry import retry, retry_or_default
from webpoll.selectors.locator import (
    Locator,
    LocatorLike,
    LocatorStrategy,
    describe,
    exists as _exists,
    resolve,
    resolve_all,
    to_locator,
)
from webpoll.utils.logger import get_logger

log = get_logger(__name__)

# HTML attributes whose presence is the value. WebDriver reports them as "true"
# when present and None otherwise.
BOOLEAN_ATTRIBUTES = frozenset(
    [
        "async", "autofocus", "autoplay", "checked", "compact", "complete",
        "controls", "declare", "defaultchecked", "defaultselected", "defer",
        "disabled", "draggable", "ended", "formnovalidate", "hidden",
        "indeterminate", "iscontenteditable", "ismap", "itemscope", "loop",
        "multiple", "muted", "nohref", "noresize", "noshade", "novalidate",
        "nowrap", "open", "paused", "pubdate", "readonly", "required",
        "reversed", "scoped", "seamless", "seeking", "selected", "spellcheck",
        "truespeed", "willvalidate",
    ]
)

KeySequence = Union[str, Sequence[str]]


# ------------- Internals -------------

def _narrate(ctx: ExecutionContext, action: str, *args: Any) -> None:
    if ctx.narrate:
        log.info(" ".join([action, *(describe(a) if not isinstance(a, str) else repr(a) for a in args)]))


def _lower(s: Any) -> str:
    return "" if s is None else str(s).lower()


def _case_insensitive_eq(a: Any, b: Any) -> bool:
    return _lower(a) == _lower(b)


def _read(ctx: ExecutionContext, loc: LocatorLike, fn: Callable[[Any], Any], default: Any, what: str) -> Any:
    """
    Poll until the element resolves, then return fn(element) whatever it is
    (None and False included). `default` when it never resolves.
    """
    box = retry_or_default(
        ctx,
        lambda: (fn(resolve(ctx.driver, loc)),),
        None,
        description=f"{what} {describe(loc)}",
    )
    return box[0] if box is not None else default


def _script_target(ctx: ExecutionContext, loc: LocatorLike) -> tuple[str, Any]:
    """JS expression + argument that evaluate to the element inside execute_script."""
    target = to_locator(loc)
    if isinstance(target, Locator) and target.strategy is LocatorStrategy.css:
        return "document.querySelector(arguments[0])", target.value
    return "arguments[0]", resolve(ctx.driver, target)


_ON_SCREEN_JS = (
    "var pos = {target}.getBoundingClientRect();"
    "return (0 <= pos.top && pos.top <= window.innerHeight)"
    " || (0 <= pos.bottom && pos.bottom <= window.innerHeight);"
)

_SCROLL_JS = "{target}.scrollIntoView({{behavior: arguments[1], block: arguments[2], inline: arguments[3]}});"


# ------------- Immediate helpers -------------

def exists(ctx: ExecutionContext, loc: LocatorLike) -> bool:
    """True if `loc` matches an element right now. Immediate: no polling."""
    return _exists(ctx.driver, loc)


def is_on_screen(ctx: ExecutionContext, loc: LocatorLike) -> bool:
    """
    True if the top or bottom edge of the element is inside the viewport.
    A script failure (element missing, node gone) reads as False.
    """
    try:
        expr, arg = _script_target(ctx, loc)
        return bool(execute_script(ctx, _ON_SCREEN_JS.format(target=expr), arg))
    except WebDriverException as exc:
        log.debug(f"on-screen probe failed for {describe(loc)}: {exc.__class__.__name__}")
        return False


# ------------- Actions -------------

def scroll_to(
    ctx: ExecutionContext,
    loc: LocatorLike,
    *,
    behavior: str = "auto",
    block: str = "center",
    inline: str = "center",
    force: bool = False,
) -> LocatorLike:
    """
    Scroll the element into view via Element.scrollIntoView().

    Does nothing when the element is already on screen unless `force`.
    `behavior`, `block` and `inline` are passed to scrollIntoView as is.
    """
    behavior, block, inline = str(behavior), str(block), str(inline)

    def _scroll() -> bool:
        if not _exists(ctx.driver, loc):
            return False
        if not force and is_on_screen(ctx, loc):
            return True
        try:
            expr, arg = _script_target(ctx, loc)
            execute_script(ctx, _SCROLL_JS.format(target=expr), arg, behavior, block, inline)
            return True
        except WebDriverException as exc:
            # Node replaced between lookup and script
            log.debug(f"scrollIntoView failed for {describe(loc)}: {exc.__class__.__name__}")
            return False

    retry(ctx, _scroll, description=f"scroll to {describe(loc)}")
    return loc


def wait_until_clickable(ctx: ExecutionContext, loc: LocatorLike, *, timeout_ms: Optional[int] = None) -> bool:
    """Polls until the element is displayed."""
    return retry(
        ctx,
        lambda: resolve(ctx.driver, loc).is_displayed(),
        timeout_ms=timeout_ms,
        description=f"clickable {describe(loc)}",
    )


def click(
    ctx: ExecutionContext,
    loc: LocatorLike,
    *,
    scroll: bool = True,
    scroll_options: Optional[dict] = None,
    timeout_ms: Optional[int] = None,
) -> bool:
    """
    Scroll to the element (unless scroll=False), wait for it to be displayed,
    then click it. Intercepted or not-yet-interactable clicks are retried.
    """
    _narrate(ctx, "click", loc)

    def _click() -> bool:
        if scroll:
            scroll_to(ctx, loc, **(scroll_options or {}))
        element = resolve(ctx.driver, loc)
        if element.is_displayed():
            element.click()
            return True
        return False

    return retry(ctx, _click, timeout_ms=timeout_ms, description=f"click {describe(loc)}")


submit = click
toggle = click


def send_keys(ctx: ExecutionContext, loc: LocatorLike, keys: KeySequence) -> Optional[bool]:
    """
    Type into an element. `keys` is a string or a list of strings/Keys.
    Empty input never reaches the driver, which rejects empty sequences.
    """
    chunks = [keys] if isinstance(keys, str) else list(keys)
    if not "".join(chunks):
        return None
    _narrate(ctx, "send-keys", loc)

    def _send() -> bool:
        resolve(ctx.driver, loc).send_keys(*chunks)
        return True

    return retry(ctx, _send, description=f"send keys to {describe(loc)}")


input_text = send_keys


def select_by_text(ctx: ExecutionContext, loc: LocatorLike, text: str) -> LocatorLike:
    """Pick a drop-down option by its visible text."""
    _narrate(ctx, "select-by-text", loc, text)

    def _select():
        scroll_to(ctx, loc)
        Select(resolve(ctx.driver, loc)).select_by_visible_text(text)
        return loc

    return retry(ctx, _select, description=f"select {text!r} in {describe(loc)}")


def select_by_value(ctx: ExecutionContext, loc: LocatorLike, value: str) -> LocatorLike:
    """Pick a drop-down option by its value attribute."""
    _narrate(ctx, "select-by-value", loc, value)

    def _select():
        scroll_to(ctx, loc)
        Select(resolve(ctx.driver, loc)).select_by_value(value)
        return loc

    return retry(ctx, _select, description=f"select value {value!r} in {describe(loc)}")


def options(ctx: ExecutionContext, loc: LocatorLike) -> list[dict]:
    """Value and visible text of each selected option of a drop-down."""
    def _options() -> list[dict]:
        select = Select(resolve(ctx.driver, loc))
        return [{"value": el.get_attribute("value"), "text": el.text} for el in select.all_selected_options]

    return retry(ctx, _options, description=f"options of {describe(loc)}")


def click_when_visible(ctx: ExecutionContext, loc: LocatorLike) -> bool:
    """Clicks the element after asserting it becomes visible."""
    if not visible(ctx, loc):
        raise AssertionError(f"{describe(loc)} never became visible")
    return click(ctx, loc)


def set_checkbox(ctx: ExecutionContext, loc: LocatorLike, checked: bool) -> None:
    """Click the checkbox only if its state differs from `checked`."""
    if selected(ctx, loc) != bool(checked):
        toggle(ctx, loc)


# ------------- Reads -------------

def tag(ctx: ExecutionContext, loc: LocatorLike) -> Optional[str]:
    return _read(ctx, loc, lambda el: el.tag_name, None, "tag")


def text(ctx: ExecutionContext, loc: LocatorLike) -> str:
    """The element's innerText, or "" if it never resolves."""
    return _read(ctx, loc, lambda el: el.text, "", "text") or ""


def value(ctx: ExecutionContext, loc: LocatorLike) -> str:
    """An input's current value, or "" if it never resolves."""
    return _read(ctx, loc, lambda el: el.get_attribute("value"), "", "value") or ""


def attribute(ctx: ExecutionContext, loc: LocatorLike, name: str) -> Optional[str]:
    """
    Attribute value. For boolean HTML attributes (checked, disabled, ...) the
    result is the attribute name when present and None when absent.
    """
    if name == "text":
        return text(ctx, loc)
    raw = _read(ctx, loc, lambda el: el.get_attribute(name), None, f"attribute {name!r} of")
    if name.lower() in BOOLEAN_ATTRIBUTES:
        return name if raw == "true" else None
    return raw


def classes(ctx: ExecutionContext, loc: LocatorLike) -> list[str]:
    return _class_list(_read(ctx, loc, lambda el: el.get_attribute("class"), None, "classes of"))


def _class_list(raw: Optional[str]) -> list[str]:
    return [c for c in (raw or "").split() if c]


def selected(ctx: ExecutionContext, loc: LocatorLike) -> bool:
    """Current selected/checked state; False if the element never resolves."""
    return bool(_read(ctx, loc, lambda el: el.is_selected(), False, "selected?"))


def allow_backspace(ctx: ExecutionContext, loc: LocatorLike) -> bool:
    """
    Whether backspace is safe on the element. On selects, radios, checkboxes
    and buttons some browsers treat it as "navigate back".
    """
    tag_name = _lower(tag(ctx, loc))
    if tag_name == "select":
        return False
    if tag_name == "input":
        return _lower(attribute(ctx, loc, "type")) not in ("radio", "checkbox", "button")
    return True


# ------------- Polling assertions -------------

def visible(ctx: ExecutionContext, loc: LocatorLike) -> bool:
    """Polls until the element is displayed; False on timeout."""
    return retry_or_default(
        ctx, lambda: resolve(ctx.driver, loc).is_displayed(), False, description=f"visible? {describe(loc)}"
    )


def invisible(ctx: ExecutionContext, loc: LocatorLike) -> bool:
    """Polls until the element is present but not displayed; False on timeout."""
    return retry_or_default(
        ctx, lambda: not resolve(ctx.driver, loc).is_displayed(), False, description=f"invisible? {describe(loc)}"
    )


def has_class(ctx: ExecutionContext, loc: LocatorLike, cls: str) -> bool:
    return retry_or_default(
        ctx,
        lambda: cls in _class_list(resolve(ctx.driver, loc).get_attribute("class")),
        False,
        description=f"has-class {cls!r} {describe(loc)}",
    )


def has_not_class(ctx: ExecutionContext, loc: LocatorLike, cls: str) -> bool:
    return retry_or_default(
        ctx,
        lambda: cls not in _class_list(resolve(ctx.driver, loc).get_attribute("class")),
        False,
        description=f"has-not-class {cls!r} {describe(loc)}",
    )


def text_equals(ctx: ExecutionContext, loc: LocatorLike, expected: str) -> bool:
    """Case-insensitive innerText equality, polled until true or timeout."""
    _narrate(ctx, "assert text=", loc, expected)
    return retry_or_default(
        ctx,
        lambda: _case_insensitive_eq(resolve(ctx.driver, loc).text, expected),
        False,
        description=f"text= {describe(loc)} {expected!r}",
    )


def value_equals(ctx: ExecutionContext, loc: LocatorLike, expected: str) -> bool:
    """Case-insensitive input value equality, polled until true or timeout."""
    _narrate(ctx, "assert value=", loc, expected)
    return retry_or_default(
        ctx,
        lambda: _case_insensitive_eq(resolve(ctx.driver, loc).get_attribute("value"), expected),
        False,
        description=f"value= {describe(loc)} {expected!r}",
    )


def contains_text(ctx: ExecutionContext, loc: LocatorLike, expected: str) -> bool:
    """Case-insensitive innerText substring check, polled until true or timeout."""
    _narrate(ctx, "assert contains-text?", loc, expected)
    return retry_or_default(
        ctx,
        lambda: _lower(expected) in _lower(resolve(ctx.driver, loc).text),
        False,
        description=f"contains-text? {describe(loc)} {expected!r}",
    )


def num_elements_equals(ctx: ExecutionContext, loc: Any, expected: int) -> bool:
    _narrate(ctx, "assert num-elements=", loc, str(expected))
    return retry_or_default(
        ctx,
        lambda: len(resolve_all(ctx.driver, loc)) == expected,
        False,
        description=f"num-elements= {describe(loc)} {expected}",
    )


def element_matches(ctx: ExecutionContext, loc: LocatorLike, pred: Callable[[Any], Any]) -> bool:
    """Polls until pred(element) is truthy; False on timeout."""
    return bool(
        retry_or_default(
            ctx,
            lambda: bool(pred(resolve(ctx.driver, loc))),
            False,
            description=f"element matches {describe(loc)}",
        )
    )


__all__ = [
    "BOOLEAN_ATTRIBUTES",
    "exists",
    "is_on_screen",
    "scroll_to",
    "wait_until_clickable",
    "click",
    "submit",
    "toggle",
    "send_keys",
    "input_text",
    "select_by_text",
    "select_by_value",
    "options",
    "click_when_visible",
    "set_checkbox",
    "tag",
    "text",
    "value",
    "attribute",
    "classes",
    "selected",
    "allow_backspace",
    "visible",
    "invisible",
    "has_class",
    "has_not_class",
    "text_equals",
    "value_equals",
    "contains_text",
    "num_elements_equals",
    "element_matches",
]
