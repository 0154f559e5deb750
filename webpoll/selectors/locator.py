# webpoll/selectors/locator.py
from __future__ import annotations

import re
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator
from selenium.common.exceptions import NoSuchElementException
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webelement import WebElement

from webpoll.core.errors import LocatorError
from webpoll.utils.config import get_settings
from webpoll.utils.logger import get_logger

log = get_logger(__name__)


class LocatorStrategy(str, Enum):
    css = "css"
    id = "id"
    xpath = "xpath"
    tag_name = "tag_name"
    link_text = "link_text"
    partial_link_text = "partial_link_text"
    name = "name"
    class_name = "class_name"


_BY = {
    LocatorStrategy.css: By.CSS_SELECTOR,
    LocatorStrategy.id: By.ID,
    LocatorStrategy.xpath: By.XPATH,
    LocatorStrategy.tag_name: By.TAG_NAME,
    LocatorStrategy.link_text: By.LINK_TEXT,
    LocatorStrategy.partial_link_text: By.PARTIAL_LINK_TEXT,
    LocatorStrategy.name: By.NAME,
    LocatorStrategy.class_name: By.CLASS_NAME,
}

# Extra spellings accepted for dict keys, after kebab/camel normalisation
_ALIASES = {
    "css_selector": LocatorStrategy.css,
    "tag": LocatorStrategy.tag_name,
    "class": LocatorStrategy.class_name,
}


class Locator(BaseModel):
    """One way of finding an element: a strategy and its query string."""

    strategy: LocatorStrategy = Field(default=LocatorStrategy.css)
    value: str = Field(..., description="Query string for the strategy")

    model_config = {"frozen": True}

    @field_validator("value")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("locator value cannot be empty")
        return v

    def __str__(self) -> str:
        if self.strategy is LocatorStrategy.css:
            return self.value
        return f"{self.strategy.value}={self.value}"


LocatorLike = Union[str, Locator, Mapping[str, Any], WebElement]


def _normalise_key(key: str) -> str:
    key = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", str(key))
    return key.replace("-", "_").lower()


def _strategy_for(key: str) -> Optional[LocatorStrategy]:
    norm = _normalise_key(key)
    if norm in _ALIASES:
        return _ALIASES[norm]
    try:
        return LocatorStrategy(norm)
    except ValueError:
        return None


def is_element(value: Any) -> bool:
    return isinstance(value, WebElement)


def to_locator(value: LocatorLike, *, allow_css_fallback: Optional[bool] = None) -> Union[Locator, WebElement]:
    """
    Normalise caller input into a Locator (or pass a resolved element through).

    - "h1"                      -> Locator(css, "h1")
    - {"xpath": "//h1"}         -> Locator(xpath, "//h1")
    - {"partialLinkText": "an"} -> Locator(partial_link_text, "an")
    - WebElement                -> returned unchanged

    Dicts with no recognised key are rejected. With `allow_css_fallback`
    (or the LOCATOR_CSS_FALLBACK setting) a single-key dict with an unknown
    key has its value used as a CSS selector instead.
    """
    if is_element(value) or isinstance(value, Locator):
        return value
    if isinstance(value, str):
        return Locator(strategy=LocatorStrategy.css, value=value)
    if isinstance(value, Mapping):
        if len(value) != 1:
            raise LocatorError(f"Locator dict must have exactly one key, got {sorted(map(str, value))}")
        (key, query), = value.items()
        strategy = _strategy_for(key)
        if strategy is not None:
            return Locator(strategy=strategy, value=str(query))
        if allow_css_fallback is None:
            allow_css_fallback = get_settings().LOCATOR_CSS_FALLBACK
        if allow_css_fallback and isinstance(query, str):
            log.warning(f"Unknown locator key {key!r}; treating {query!r} as a CSS selector")
            return Locator(strategy=LocatorStrategy.css, value=query)
        raise LocatorError(f"Unknown locator key {key!r}; expected one of {[s.value for s in LocatorStrategy]}")
    raise LocatorError(f"Cannot build a locator from {type(value).__name__}: {value!r}")


def to_by(locator: Locator) -> tuple[str, str]:
    """Selenium (by, value) pair for a Locator."""
    return _BY[locator.strategy], locator.value


def describe(value: Any) -> str:
    """Short label for logs and error messages."""
    if is_element(value):
        return f"<element {getattr(value, 'id', '?')}>"
    if isinstance(value, Locator):
        return str(value)
    if isinstance(value, Mapping) and len(value) == 1:
        (key, query), = value.items()
        return f"{key}={query}"
    return str(value)


def resolve(driver, value: LocatorLike) -> WebElement:
    """
    Find the first element matching `value`. Immediate: no polling.
    Raises NoSuchElementException when nothing matches.
    """
    loc = to_locator(value)
    if is_element(loc):
        return loc
    by, query = to_by(loc)
    element = driver.find_element(by, query)
    if element is None:
        raise NoSuchElementException(f"No element matches {loc}")
    return element


def resolve_all(driver, value: Any) -> list[WebElement]:
    """All elements matching `value`. Immediate: no polling."""
    if isinstance(value, (list, tuple)) and all(is_element(e) for e in value):
        return list(value)
    loc = to_locator(value)
    if is_element(loc):
        return [loc]
    by, query = to_by(loc)
    return list(driver.find_elements(by, query))


def exists(driver, value: LocatorLike) -> bool:
    """True if `value` matches an element right now."""
    try:
        resolve(driver, value)
        return True
    except NoSuchElementException:
        return False
