# webpoll/core/forms.py
from __future__ import annotations

"""Form filling
---------------
fill_form() takes one or more {locator: value} maps and applies them in order.
Within a map each field goes through three passes:

  1) clear   - string-valued fields that accept backspace are emptied with
               N backspaces followed by N deletes (N = current value length)
  2) fill    - strings are typed; callables are invoked as fn(ctx, locator)
  3) verify  - string-valued fields must read back the typed value

Callables are the escape hatch for clicks, selects and custom typing.
"""

from typing import Any, Callable, Dict, Mapping, Union

from selenium.webdriver.common.keys import Keys

from webpoll.core import actions
from webpoll.core.context import ExecutionContext
from webpoll.core.errors import FormFillMismatch
from webpoll.selectors.locator import describe
from webpoll.utils.logger import get_logger
from webpoll.utils.timing import measure

log = get_logger(__name__)

FieldAction = Callable[[ExecutionContext, Any], Any]
FieldValue = Union[str, FieldAction]
FieldMap = Mapping[Any, FieldValue]


def _typer(text: str) -> FieldAction:
    def _type(ctx: ExecutionContext, loc: Any) -> Any:
        return actions.send_keys(ctx, loc, text)
    return _type


def clear_fields(ctx: ExecutionContext, fields: FieldMap) -> None:
    """Empty every string-valued field whose element allows backspace."""
    for loc, val in fields.items():
        if not isinstance(val, str) or not actions.allow_backspace(ctx, loc):
            continue
        n = len(actions.value(ctx, loc))
        if n:
            actions.send_keys(ctx, loc, [Keys.BACKSPACE] * n + [Keys.DELETE] * n)


def normalize_fields(ctx: ExecutionContext, fields: FieldMap) -> Dict[Any, FieldAction]:
    """Turn string values into send-keys callables; callables pass through."""
    out: Dict[Any, FieldAction] = {}
    for loc, val in fields.items():
        if isinstance(val, str):
            out[loc] = _typer(val)
        elif callable(val):
            out[loc] = val
        else:
            raise TypeError(f"Form value for {describe(loc)} must be a string or callable, got {type(val).__name__}")
    return out


def _verify(ctx: ExecutionContext, fields: FieldMap) -> None:
    for loc, val in fields.items():
        if not isinstance(val, str):
            continue
        if not actions.value_equals(ctx, loc, val):
            raise FormFillMismatch(describe(loc), val, actions.value(ctx, loc))


def _fill_group(ctx: ExecutionContext, fields: FieldMap) -> None:
    clear_fields(ctx, fields)
    for loc, fn in normalize_fields(ctx, fields).items():
        fn(ctx, loc)
    _verify(ctx, fields)


@measure("fill_form")
def fill_form(ctx: ExecutionContext, fields: FieldMap, *more_fields: FieldMap) -> None:
    """
    Fill one or more groups of fields, strictly left to right.

        fill_form(ctx, {"#user": "ana", "#pass": "s3cret"}, {"#submit": actions.click})

    Raises FormFillMismatch when a typed field reads back something else.
    """
    groups = (fields, *more_fields)
    if ctx.narrate:
        log.info(f"fill-form {len(groups)} group(s)")
    for group in groups:
        _fill_group(ctx, group)


__all__ = ["fill_form", "clear_fields", "normalize_fields"]
