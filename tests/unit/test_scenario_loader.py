from pathlib import Path
import textwrap

import pytest

from webpoll.core.errors import ScenarioError
from webpoll.core.scenario_loader import (
    StepFillForm,
    StepGoto,
    StepSelect,
    load_scenario,
    load_scenarios_file,
)
from webpoll.selectors.locator import LocatorStrategy


def _write(tmp_path: Path, body: str, name: str = "s.yaml") -> Path:
    f = tmp_path / name
    f.write_text(textwrap.dedent(body), encoding="utf-8")
    return f


def test_load_scenarios_file_multiple_docs(tmp_path: Path):
    f = _write(
        tmp_path,
        """
        name: one
        steps:
          - action: goto
            url: "https://example.com/one"
        ---
        name: two
        tags: [smoke]
        steps:
          - action: goto
            url: "https://example.com/two"
        """,
    )
    scenarios = load_scenarios_file(f)
    assert [s.name for s in scenarios] == ["one", "two"]
    assert scenarios[1].tags == ["smoke"]


def test_env_substitution(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("LOGIN_USER", "ana")
    f = _write(
        tmp_path,
        """
        name: login
        base_url: https://example.com/
        steps:
          - action: goto
            url: /login
          - action: fill_form
            fields:
              "#user": "${LOGIN_USER}"
              "#pass": "${UNSET_VAR_FOR_TEST}"
        """,
    )
    sc = load_scenario(f)
    goto, fill = sc.steps
    assert isinstance(goto, StepGoto) and sc.url_for(goto.url) == "https://example.com/login"
    assert isinstance(fill, StepFillForm)
    assert fill.groups == [{"#user": "ana", "#pass": "${UNSET_VAR_FOR_TEST}"}]


def test_selector_shapes(tmp_path: Path):
    f = _write(
        tmp_path,
        """
        name: shapes
        steps:
          - action: click
            selector: "button.primary"
          - action: assert_text
            selector: {xpath: "//h1"}
            expect: Welcome
          - action: select
            selector: {name: country}
            text: Portugal
        """,
    )
    click, assert_text, select = load_scenario(f).steps
    assert click.selector.strategy is LocatorStrategy.css
    assert assert_text.selector.strategy is LocatorStrategy.xpath
    assert isinstance(select, StepSelect) and select.text == "Portugal"


@pytest.mark.parametrize(
    "steps, fragment",
    [
        ('[{action: click, selector: {xpth: "//a"}}]', "Unknown locator key"),
        ("[{action: select, selector: '#c', text: a, value: b}]", "exactly one"),
        ("[{action: goto, url: /relative}]", "requires base_url"),
        ("[{action: hover, selector: a}]", "action"),
        ("[]", "steps"),
    ],
)
def test_invalid_scenarios(tmp_path: Path, steps: str, fragment: str):
    f = _write(tmp_path, f"name: bad\nsteps: {steps}\n")
    with pytest.raises(ScenarioError) as exc_info:
        load_scenarios_file(f)
    assert fragment in str(exc_info.value)


def test_yaml_errors_become_scenario_errors(tmp_path: Path):
    f = _write(tmp_path, "name: [unclosed\n")
    with pytest.raises(ScenarioError):
        load_scenario(f)


def test_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_scenarios_file(tmp_path / "nope.yaml")
