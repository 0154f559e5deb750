import pytest
from selenium.common.exceptions import NoSuchElementException
from selenium.webdriver.common.by import By

from webpoll.core.errors import LocatorError
from webpoll.selectors.locator import (
    Locator,
    LocatorStrategy,
    describe,
    exists,
    resolve,
    resolve_all,
    to_by,
    to_locator,
)
from webpoll.utils.config import get_settings

from tests.fakes import FakeElement


def test_plain_string_is_css():
    loc = to_locator("#submit")
    assert loc == Locator(strategy=LocatorStrategy.css, value="#submit")
    assert to_by(loc) == (By.CSS_SELECTOR, "#submit")


@pytest.mark.parametrize(
    "raw, by",
    [
        ({"xpath": "//h1"}, By.XPATH),
        ({"id": "main"}, By.ID),
        ({"partialLinkText": "Sign"}, By.PARTIAL_LINK_TEXT),
        ({"link-text": "Sign in"}, By.LINK_TEXT),
        ({"tagName": "h1"}, By.TAG_NAME),
        ({"className": "btn"}, By.CLASS_NAME),
        ({"name": "email"}, By.NAME),
        ({"css": ".row"}, By.CSS_SELECTOR),
    ],
)
def test_dict_keys_map_to_strategies(raw, by):
    assert to_by(to_locator(raw))[0] == by


def test_unknown_key_is_rejected():
    with pytest.raises(LocatorError):
        to_locator({"xpth": "//h1"})


def test_multi_key_dict_is_rejected():
    with pytest.raises(LocatorError):
        to_locator({"id": "a", "css": "b"})


def test_unknown_key_falls_back_to_css_when_opted_in():
    loc = to_locator({"selector": "div.card"}, allow_css_fallback=True)
    assert loc.strategy is LocatorStrategy.css and loc.value == "div.card"


def test_fallback_opt_in_from_settings(monkeypatch):
    monkeypatch.setenv("WEBPOLL_LOCATOR_CSS_FALLBACK", "true")
    get_settings.cache_clear()
    assert to_locator({"sel": "p"}).value == "p"


def test_empty_value_rejected():
    with pytest.raises(ValueError):
        Locator(value="   ")


def test_elements_pass_through(driver):
    el = FakeElement("e1")
    assert to_locator(el) is el
    assert resolve(driver, el) is el
    assert describe(el) == "<element e1>"


def test_resolve_and_exists(driver):
    el = driver.add("h1", FakeElement("h1"))
    assert resolve(driver, "h1") is el
    assert exists(driver, "h1")
    assert not exists(driver, "h2")
    with pytest.raises(NoSuchElementException):
        resolve(driver, {"xpath": "//nothing"})


def test_resolve_all(driver):
    a, b = FakeElement("a"), FakeElement("b")
    driver.many[(By.CSS_SELECTOR, "li")] = [a, b]
    assert resolve_all(driver, "li") == [a, b]
    assert resolve_all(driver, [a, b]) == [a, b]
    assert resolve_all(driver, "ul") == []


def test_describe():
    assert describe("h1") == "h1"
    assert describe({"xpath": "//a"}) == "xpath=//a"
    assert describe(Locator(strategy=LocatorStrategy.id, value="x")) == "id=x"
