"""Question models for questionnaire templates.

A question carries two optional bags of catalog-authored configuration:

  - ``validation_rules``: length / numeric / file-count bounds and a regex
    pattern, interpreted by the validation engine
  - ``conditional_logic``: ``show_if`` / ``hide_if`` condition lists combined
    by a single shared ``operator`` (AND / OR), interpreted by the
    conditional logic evaluator

Both arrive as loosely-typed JSON from the catalog.  They are parsed once
here, at load time, into known-safe shapes:

  - malformed rule values (non-numeric bounds, uncompilable patterns) are
    dropped with a warning, so the rule is simply not applied
  - conditions are a discriminated union keyed on ``operator``; anything the
    evaluator cannot interpret (unknown operator, missing question_id, not a
    mapping) becomes an ``UnsupportedCondition`` that always evaluates false
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)


# --- Validation rules ---

# Catalog spellings (camelCase from the admin editor, snake_case from older
# templates) mapped to the model field they populate.
_RULE_ALIASES: dict[str, str] = {
    "minLength": "min_length",
    "min_length": "min_length",
    "maxLength": "max_length",
    "max_length": "max_length",
    "min": "min",
    "max": "max",
    "minFiles": "min_files",
    "min_files": "min_files",
    "maxFiles": "max_files",
    "max_files": "max_files",
    "pattern": "pattern",
}


def _coerce_bound(raw: Any) -> float | None:
    """Return *raw* as a finite float, or None when it is not a usable bound."""
    if isinstance(raw, bool):
        return None
    try:
        num = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num):
        return None
    return num


class ValidationRules(BaseModel):
    """Constraints attached to a question.  Never mutated after load."""

    min_length: Optional[float] = None
    max_length: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    min_files: Optional[float] = None
    max_files: Optional[float] = None
    pattern: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _normalise(cls, data: Any) -> Any:
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring validation_rules of type %s", type(data).__name__)
            return {}

        parsed: dict[str, Any] = {}
        for key, raw in data.items():
            name = _RULE_ALIASES.get(key)
            if name is None or raw is None:
                # fileTypes, accepted_types, allow_other, ... are widget hints
                continue
            if name == "pattern":
                if not isinstance(raw, str):
                    logger.warning("Ignoring non-string pattern rule: %r", raw)
                    continue
                try:
                    re.compile(raw)
                except re.error as exc:
                    logger.warning("Ignoring invalid pattern rule %r: %s", raw, exc)
                    continue
                parsed[name] = raw
                continue
            bound = _coerce_bound(raw)
            if bound is None:
                logger.warning("Ignoring non-numeric %s rule: %r", key, raw)
                continue
            parsed[name] = bound
        return parsed


# --- Options ---

class QuestionOption(BaseModel):
    """A selectable choice for single/multiple choice style questions."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    label: str = ""
    value: Any = None
    is_other: bool = Field(False, alias="isOther")


# --- Conditions ---

class _ConditionBase(BaseModel):
    question_id: str
    value: Any = None


class EqualsCondition(_ConditionBase):
    """Strict equality, or membership when the answer is a list."""

    operator: Literal["equals"] = "equals"


class NotEqualsCondition(_ConditionBase):
    """Negation of ``equals`` (non-membership for list answers)."""

    operator: Literal["not_equals"] = "not_equals"


class ContainsCondition(_ConditionBase):
    """Case-insensitive substring test against the answer (or any list element)."""

    operator: Literal["contains"] = "contains"


class GreaterThanCondition(_ConditionBase):
    """Numeric comparison; false when either side is not a finite number."""

    operator: Literal["greater_than"] = "greater_than"


class LessThanCondition(_ConditionBase):
    """Numeric comparison; false when either side is not a finite number."""

    operator: Literal["less_than"] = "less_than"


class IsEmptyCondition(_ConditionBase):
    """True when the answer is missing, blank, or an empty list."""

    operator: Literal["is_empty"] = "is_empty"


class IsNotEmptyCondition(_ConditionBase):
    """Negation of ``is_empty``."""

    operator: Literal["is_not_empty"] = "is_not_empty"


class UnsupportedCondition(BaseModel):
    """Placeholder for a condition the catalog could not express.

    Always evaluates false.  ``raw`` keeps the original payload for logging.
    """

    operator: Literal["unsupported"] = "unsupported"
    question_id: Optional[str] = None
    raw_operator: Optional[str] = None
    raw: Any = None


Condition = Annotated[
    Union[
        EqualsCondition,
        NotEqualsCondition,
        ContainsCondition,
        GreaterThanCondition,
        LessThanCondition,
        IsEmptyCondition,
        IsNotEmptyCondition,
        UnsupportedCondition,
    ],
    Field(discriminator="operator"),
]

CONDITION_OPERATORS: set[str] = {
    "equals",
    "not_equals",
    "contains",
    "greater_than",
    "less_than",
    "is_empty",
    "is_not_empty",
}


def _parse_condition(raw: Any, where: str) -> dict:
    """Shape one raw condition so the discriminated union can validate it."""
    if not isinstance(raw, dict):
        logger.warning("%s: condition is not a mapping: %r", where, raw)
        return {"operator": "unsupported", "raw": raw}

    op = raw.get("operator")
    qid = raw.get("question_id")
    if not isinstance(qid, str) or not qid:
        logger.warning("%s: condition without question_id: %r", where, raw)
        return {"operator": "unsupported", "raw_operator": op if isinstance(op, str) else None, "raw": raw}
    if op not in CONDITION_OPERATORS:
        logger.warning("%s: unknown condition operator %r on %s", where, op, qid)
        return {
            "operator": "unsupported",
            "question_id": qid,
            "raw_operator": op if isinstance(op, str) else None,
            "raw": raw,
        }
    return {"operator": op, "question_id": qid, "value": raw.get("value")}


class ConditionalLogic(BaseModel):
    """Show/hide rules for a question.

    ``operator`` is shared by both lists: with ``AND`` every condition in a
    list must hold, with ``OR`` any one is enough.
    """

    show_if: List[Condition] = []
    hide_if: List[Condition] = []
    operator: Literal["AND", "OR"] = "AND"

    @model_validator(mode="before")
    @classmethod
    def _normalise(cls, data: Any) -> Any:
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring conditional_logic of type %s", type(data).__name__)
            return {}

        op = data.get("operator") or "AND"
        op = str(op).upper()
        if op not in ("AND", "OR"):
            logger.warning("Unknown conditional_logic operator %r, using AND", data.get("operator"))
            op = "AND"

        parsed: dict[str, Any] = {"operator": op}
        for key in ("show_if", "hide_if"):
            raw_list = data.get(key)
            if raw_list is None:
                parsed[key] = []
            elif isinstance(raw_list, list):
                parsed[key] = [_parse_condition(c, key) for c in raw_list]
            else:
                # A malformed list still has to fail closed, not vanish
                parsed[key] = [_parse_condition(raw_list, key)]
        return parsed

    @property
    def conditions(self) -> list:
        """Every condition from both lists, show_if first."""
        return [*self.show_if, *self.hide_if]


# --- Question ---

class Question(BaseModel):
    """A single prompt within a template page.

    ``question_type`` is kept as a plain string so that a catalog carrying a
    newer type still loads; types outside ``QUESTION_TYPES`` skip
    type-specific validation.
    """

    id: str
    template_id: Optional[str] = None
    page_id: Optional[str] = None
    section: Optional[str] = None
    question_text: str = ""
    question_type: str
    options: List[QuestionOption] = []
    validation_rules: Optional[ValidationRules] = None
    is_required: bool = False
    order_index: int = 0
    conditional_logic: Optional[ConditionalLogic] = None
    help_text: Optional[str] = None
    placeholder_text: Optional[str] = None
    question_group: Optional[str] = None
    validation_message: Optional[str] = None
    tooltip_text: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_null_collections(cls, data: Any) -> Any:
        # JSONB columns come back as null when unset
        if isinstance(data, dict) and data.get("options") is None and "options" in data:
            data = {**data, "options": []}
        return data
