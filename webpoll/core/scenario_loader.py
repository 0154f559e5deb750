# webpoll/core/scenario_loader.py
from __future__ import annotations

"""Scenario schema and loader
-----------------------------
Pydantic models for scenario steps and a YAML loader supporting multi-document
files and ${ENV_VAR} substitution in string values.
"""

import os
import re
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic.functional_validators import BeforeValidator

from webpoll.core.errors import LocatorError, ScenarioError
from webpoll.selectors.locator import Locator, to_locator
from webpoll.utils.logger import get_logger

log = get_logger(__name__)


# ---------- Helpers ----------

def _as_locator(v: Any) -> Any:
    if isinstance(v, Locator):
        return v
    try:
        return to_locator(v)
    except LocatorError as exc:
        raise ValueError(str(exc)) from exc


ScenarioLocator = Annotated[Locator, BeforeValidator(_as_locator)]

_ENV_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def _subst_env(obj: Any) -> Any:
    """Replace ${NAME} with os.environ[NAME]; unknown names are left as written."""
    if isinstance(obj, str):
        return _ENV_RE.sub(lambda m: os.environ.get(m.group(1), m.group(0)), obj)
    if isinstance(obj, list):
        return [_subst_env(x) for x in obj]
    if isinstance(obj, dict):
        return {k: _subst_env(v) for k, v in obj.items()}
    return obj


def _format_validation(ve: ValidationError, header: str) -> str:
    lines = [header]
    for e in ve.errors():
        loc = ".".join(str(p) for p in e.get("loc", []))
        lines.append(f"  - {loc}: {e.get('msg', 'invalid value')}")
    return "\n".join(lines)


# ---------- Step models (discriminated union by 'action') ----------

class ActionName(str, Enum):
    goto = "goto"
    click = "click"
    send_keys = "send_keys"
    fill_form = "fill_form"
    select = "select"
    assert_text = "assert_text"
    assert_contains_text = "assert_contains_text"
    assert_value = "assert_value"
    assert_visible = "assert_visible"
    assert_url_contains = "assert_url_contains"
    switch_to_window = "switch_to_window"
    screenshot = "screenshot"
    wait = "wait"


class StepBase(BaseModel):
    action: ActionName
    name: Optional[str] = Field(default=None, description="Human-friendly step label")
    timeout_ms: Optional[int] = Field(default=None, ge=0, description="Overrides the scenario timeout")
    optional: bool = Field(default=False, description="If true, log failure and continue")


class StepGoto(StepBase):
    action: Literal["goto"]
    url: str = Field(..., description="Absolute URL, or a path joined to base_url")

    @field_validator("url")
    @classmethod
    def _url_shape(cls, v: str) -> str:
        v = v.strip()
        if not (v.startswith("http://") or v.startswith("https://") or v.startswith("/")):
            raise ValueError("goto.url must be an absolute http(s) URL or a path starting with '/'")
        return v


class StepClick(StepBase):
    action: Literal["click"]
    selector: ScenarioLocator


class StepSendKeys(StepBase):
    action: Literal["send_keys"]
    selector: ScenarioLocator
    text: str


class StepFillForm(StepBase):
    action: Literal["fill_form"]
    groups: list[dict[str, str]] = Field(..., min_length=1, description="CSS selector -> text, applied group by group")

    @model_validator(mode="before")
    @classmethod
    def _single_group(cls, data: Any) -> Any:
        # `fields: {...}` is shorthand for one group
        if isinstance(data, dict) and "fields" in data and "groups" not in data:
            data = dict(data)
            data["groups"] = [data.pop("fields")]
        return data


class StepSelect(StepBase):
    action: Literal["select"]
    selector: ScenarioLocator
    text: Optional[str] = None
    value: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "StepSelect":
        if (self.text is None) == (self.value is None):
            raise ValueError("select needs exactly one of 'text' or 'value'")
        return self


class StepAssertText(StepBase):
    action: Literal["assert_text"]
    selector: ScenarioLocator
    expect: str


class StepAssertContainsText(StepBase):
    action: Literal["assert_contains_text"]
    selector: ScenarioLocator
    expect: str


class StepAssertValue(StepBase):
    action: Literal["assert_value"]
    selector: ScenarioLocator
    expect: str


class StepAssertVisible(StepBase):
    action: Literal["assert_visible"]
    selector: ScenarioLocator
    visible: bool = Field(default=True, description="False asserts the element is present but hidden")


class StepAssertUrlContains(StepBase):
    action: Literal["assert_url_contains"]
    text: str


class StepSwitchToWindow(StepBase):
    action: Literal["switch_to_window"]
    index: int = Field(default=-1, description="Position in the window handle list; -1 is the newest")


class StepScreenshot(StepBase):
    action: Literal["screenshot"]
    name: str = Field(..., description="Base filename (no extension)")


class StepWait(StepBase):
    action: Literal["wait"]
    ms: int = Field(..., ge=0)


Step = Annotated[
    Union[
        StepGoto,
        StepClick,
        StepSendKeys,
        StepFillForm,
        StepSelect,
        StepAssertText,
        StepAssertContainsText,
        StepAssertValue,
        StepAssertVisible,
        StepAssertUrlContains,
        StepSwitchToWindow,
        StepScreenshot,
        StepWait,
    ],
    Field(discriminator="action"),
]


# ---------- Scenario model ----------

class Scenario(BaseModel):
    version: str = Field(default="1")
    name: str = Field(..., description="Scenario name, e.g. 'login'")
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    base_url: Optional[str] = None
    timeout_ms: Optional[int] = Field(default=None, ge=0, description="Default polling budget for every step")
    steps: list[Step] = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("base_url")
    @classmethod
    def _strip_base(cls, v: Optional[str]) -> Optional[str]:
        return v.rstrip("/") if v else None

    @model_validator(mode="after")
    def _relative_urls_need_base(self) -> "Scenario":
        for i, step in enumerate(self.steps, start=1):
            if isinstance(step, StepGoto) and step.url.startswith("/") and not self.base_url:
                raise ValueError(f"step {i}: relative goto url {step.url!r} requires base_url")
        return self

    def url_for(self, url: str) -> str:
        return f"{self.base_url}{url}" if url.startswith("/") else url


# ---------- Public API ----------

def _validate_doc(data: Any, header: str) -> Scenario:
    if not isinstance(data, dict):
        raise ScenarioError(f"{header} must define a mapping/object at the top level.")
    try:
        return Scenario.model_validate(_subst_env(data))
    except ValidationError as ve:
        raise ScenarioError(_format_validation(ve, f"Invalid {header}:")) from ve


def load_scenario(path: Path | str) -> Scenario:
    """Load a single-document scenario file."""
    sc_path = Path(path)
    if not sc_path.exists():
        raise FileNotFoundError(f"Scenario file not found: {sc_path}")
    try:
        data = yaml.safe_load(sc_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as ye:
        raise ScenarioError(f"YAML parse error in {sc_path}: {ye}") from ye
    return _validate_doc(data, f"scenario '{sc_path}'")


def load_scenarios_file(path: Path | str) -> list[Scenario]:
    """Load one or more scenarios from a YAML file (supports multi-document)."""
    sc_path = Path(path)
    if not sc_path.exists():
        raise FileNotFoundError(f"Scenario file not found: {sc_path}")
    try:
        docs = list(yaml.safe_load_all(sc_path.read_text(encoding="utf-8")))
    except yaml.YAMLError as ye:
        raise ScenarioError(f"YAML parse error in {sc_path}: {ye}") from ye

    out: list[Scenario] = []
    for idx, data in enumerate(docs, start=1):
        if data is None:
            continue
        out.append(_validate_doc(data, f"scenario '{sc_path}' (document {idx})"))
    if not out:
        raise ScenarioError(f"No scenario documents found in {sc_path}")
    log.debug(f"Loaded {len(out)} scenario(s) from {sc_path}")
    return out


def find_scenario_files(root: Path, recursive: bool = True) -> list[Path]:
    if recursive:
        return sorted(list(root.rglob("*.yaml")) + list(root.rglob("*.yml")))
    return sorted(list(root.glob("*.yaml")) + list(root.glob("*.yml")))


__all__ = [
    "ActionName",
    "Step",
    "Scenario",
    "load_scenario",
    "load_scenarios_file",
    "find_scenario_files",
]
