import functools
import gc
import threading
import weakref

import pytest

from webpoll import api, session
from webpoll.core.errors import NoDriverError

from tests.fakes import FakeDriver, FakeElement


@pytest.fixture(autouse=True)
def _empty_slot():
    session.clear_driver()
    yield
    session.clear_driver()


def test_get_driver_without_binding_raises():
    with pytest.raises(NoDriverError):
        session.get_driver()
    with pytest.raises(NoDriverError):
        api.text("h1")


def test_set_driver_none_is_noop(driver):
    session.set_driver(driver)
    session.set_driver(None)
    assert session.get_driver() is driver


def test_driver_scope_restores_previous(driver):
    other = FakeDriver()
    session.set_driver(driver)
    with session.driver_scope(other):
        assert session.get_driver() is other
    assert session.get_driver() is driver


def test_driver_scope_restores_on_error(driver):
    with pytest.raises(RuntimeError):
        with session.driver_scope(driver):
            raise RuntimeError("test body failed")
    assert session.current_driver() is None


def test_contexts_share_nesting_guard_per_driver(driver):
    first = session.context_for(driver)
    with first.polling_scope():
        assert session.context_for(driver).polling
        assert not session.context_for(FakeDriver()).polling


def test_context_cache_does_not_keep_driver_alive():
    gc.collect()
    d = FakeDriver()
    session.context_for(d)
    ref = weakref.ref(d)
    before = len(session._states)
    del d
    gc.collect()
    assert ref() is None
    assert len(session._states) == before - 1


def test_ambient_api_uses_bound_driver(driver):
    driver.add("h1", FakeElement(text="Welcome"))
    with session.driver_scope(driver):
        assert api.text_equals("h1", "welcome")
        api.to("https://example.com/")
    assert driver.current_url == "https://example.com/"


def test_explicit_driver_overrides_slot(driver):
    other = FakeDriver()
    other.add("h1", FakeElement(text="Other"))
    driver.add("h1", FakeElement(text="Bound"))
    with session.driver_scope(driver):
        assert api.text("h1", driver=other) == "Other"
        assert api.text("h1") == "Bound"


def test_api_wrappers_work_as_form_values(driver):
    user = driver.add("#user", FakeElement(tag="input", value=""))
    button = driver.add("#submit", FakeElement(tag="button"))
    with session.driver_scope(driver):
        api.fill_form({"#user": "ana"}, {"#submit": api.click})
    assert user.value == "ana"
    assert button.clicks == 1


def test_ambient_slot_is_shared_across_threads(driver):
    # No per-thread isolation: concurrent tests must pass driver= explicitly
    seen = []
    with session.driver_scope(driver):
        t = threading.Thread(target=lambda: seen.append(session.current_driver()))
        t.start()
        t.join(2)
    assert seen == [driver]


def test_browser_session_quits_and_restores(driver):
    outer = FakeDriver()
    session.set_driver(outer)
    with session.browser_session(lambda: driver) as d:
        assert d is driver
        assert session.get_driver() is driver
    assert driver.quit_called
    assert session.get_driver() is outer


def test_browser_session_quits_on_error(driver):
    with pytest.raises(ValueError):
        with session.browser_session(lambda: driver):
            raise ValueError("boom")
    assert driver.quit_called


def test_plain_callables_get_the_locator_only(driver):
    seen = []
    driver.add("#go", FakeElement(tag="button"))
    api.fill_form({"#go": lambda loc: seen.append(loc)}, driver=driver)
    assert seen == ["#go"]


def test_partial_of_api_wrapper_as_form_value(driver):
    terms = driver.add("#terms", FakeElement(tag="input", attrs={"type": "checkbox"}))
    with session.driver_scope(driver):
        api.fill_form({"#terms": functools.partial(api.set_checkbox, checked=True)})
    assert terms.clicks == 1
