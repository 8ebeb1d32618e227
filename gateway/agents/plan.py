"""Plan models and best-effort extraction of a plan from planner output."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

SELF_AGENT = "self"

_JSON_SPAN = re.compile(r"\{[\s\S]*\}")


class PlanStep(BaseModel):
    """One planned step. Tolerates loosely-typed planner output."""

    model_config = ConfigDict(populate_by_name=True)

    step: int | None = None
    agent: str = SELF_AGENT
    action: str = ""
    input_text: str = Field("", alias="input")

    @model_validator(mode="before")
    @classmethod
    def normalize(cls, data: Any) -> Any:
        # nulls take the field default; a bare value is read as the action
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        if isinstance(data, PlanStep):
            return data
        return {"action": data}

    @field_validator("step", mode="before")
    @classmethod
    def lenient_ordinal(cls, v: Any) -> int | None:
        if isinstance(v, bool):
            return None
        try:
            return int(v)
        except (TypeError, ValueError, OverflowError):
            return None

    @field_validator("agent", "action", "input_text", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        return v if isinstance(v, str) else json.dumps(v)


class Plan(BaseModel):
    steps: list[PlanStep]
    reasoning: str = ""

    @field_validator("reasoning", mode="before")
    @classmethod
    def stringify_reasoning(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else json.dumps(v)


class StepResult(BaseModel):
    """Outcome of one executed plan step. Error placeholders count as results."""

    model_config = ConfigDict(frozen=True)

    step: int
    agent: str
    action: str
    result: str


def extract_plan(text: str) -> Plan:
    """Best-effort structured extraction of a Plan from free LLM text.

    Takes the span from the first ``{`` to the last ``}`` and validates it as a
    Plan. Mistyped step fields are coerced (numbers and objects to text, nulls
    to defaults). Only a span that is not JSON, or whose ``steps`` is not a
    list, yields ``Plan(steps=[], reasoning=text)``, so a planner that answers
    in prose still produces a usable (empty) plan.

    Worst case: the greedy span also swallows unrelated braces after the plan
    object (e.g. a code sample in trailing prose). That span does not parse,
    and the whole output falls back to raw-text reasoning. Keep the greedy
    match; a stricter parser changes which outputs yield steps.
    """
    match = _JSON_SPAN.search(text)
    if match is None:
        logger.info("Planner output contained no JSON object, using raw text as reasoning")
        return Plan(steps=[], reasoning=text)

    try:
        plan = Plan.model_validate(json.loads(match.group(0)))
    except ValueError as e:
        logger.info(f"Planner output did not parse as a plan ({e.__class__.__name__}), using raw text")
        return Plan(steps=[], reasoning=text)

    for position, step in enumerate(plan.steps, start=1):
        if step.step is None:
            step.step = position
    return plan
