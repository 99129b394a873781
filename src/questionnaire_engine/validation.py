"""Validation engine — pure checks of a single answer against its question.

Evaluation order per question, first failure wins:

  1. **required**: a required question with an empty answer fails
     (an optional question with an empty answer passes immediately)
  2. **rules**: ``validation_rules`` bounds and pattern, each only when
     present on the question
  3. **type**: format checks implied by ``question_type`` (email, phone,
     number, date), independent of declared rules

Nothing here mutates the question or the answer.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Iterable, Mapping

from questionnaire_engine.models.question import Question, ValidationRules
from questionnaire_engine.models.validation import ValidationError

_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_PHONE_SEPARATORS_RE = re.compile(r"[\s\-()]")
_PHONE_RE = re.compile(r"\+?\d{10,15}")


def is_empty(value: Any) -> bool:
    """True for None, the empty string, and empty lists / dicts / sets."""
    if value is None or value == "":
        return True
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def _fmt(bound: float) -> str:
    """Render a bound without a trailing ``.0`` for whole numbers."""
    return str(int(bound)) if float(bound).is_integer() else str(bound)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_answer(question: Question, value: Any) -> ValidationError | None:
    """Validate one answer; return the first failure or None when valid."""
    if is_empty(value):
        if question.is_required:
            return ValidationError(
                field=question.id,
                message=f"{question.question_text} is required",
                type="required",
            )
        return None

    if question.validation_rules is not None:
        error = _check_rules(question, value, question.validation_rules)
        if error is not None:
            return error

    return _check_type(question, value)


def validate_answers(
    questions: Iterable[Question], answers: Mapping[str, Any]
) -> dict[str, str]:
    """Validate every question; return ``{question_id: message}`` for failures.

    *answers* is the flat ``{question_id: value}`` mapping; missing keys are
    treated as unanswered.
    """
    errors: dict[str, str] = {}
    for question in questions:
        error = validate_answer(question, answers.get(question.id))
        if error is not None:
            errors[question.id] = error.message
    return errors


def can_navigate_from_page(
    questions: Iterable[Question], answers: Mapping[str, Any]
) -> bool:
    """True when every required question among *questions* has an answer."""
    return all(
        not is_empty(answers.get(q.id)) for q in questions if q.is_required
    )


# ----------------------------------------------------------------------
# Stage 2: declared rules
# ----------------------------------------------------------------------

def _check_rules(
    question: Question, value: Any, rules: ValidationRules
) -> ValidationError | None:
    # A zero length or file bound means "unset", matching the admin editor
    if isinstance(value, str):
        if rules.min_length and len(value) < rules.min_length:
            return ValidationError(
                field=question.id,
                message=f"Minimum {_fmt(rules.min_length)} characters required",
                type="length",
            )
        if rules.max_length and len(value) > rules.max_length:
            return ValidationError(
                field=question.id,
                message=f"Maximum {_fmt(rules.max_length)} characters allowed",
                type="length",
            )

    if _is_number(value) and math.isfinite(value):
        if rules.min is not None and value < rules.min:
            return ValidationError(
                field=question.id,
                message=f"Value must be at least {_fmt(rules.min)}",
                type="range",
            )
        if rules.max is not None and value > rules.max:
            return ValidationError(
                field=question.id,
                message=f"Value must be at most {_fmt(rules.max)}",
                type="range",
            )

    if isinstance(value, (list, tuple)):
        if rules.min_files and len(value) < rules.min_files:
            return ValidationError(
                field=question.id,
                message=f"Minimum {_fmt(rules.min_files)} selections required",
                type="range",
            )
        if rules.max_files and len(value) > rules.max_files:
            return ValidationError(
                field=question.id,
                message=f"Maximum {_fmt(rules.max_files)} selections allowed",
                type="range",
            )

    if rules.pattern and isinstance(value, str):
        if re.search(rules.pattern, value) is None:
            return ValidationError(
                field=question.id,
                message=question.validation_message or "Invalid format",
                type="format",
            )

    return None


# ----------------------------------------------------------------------
# Stage 3: question-type formats
# ----------------------------------------------------------------------

def _parses_as_date(value: str) -> bool:
    text = value.strip()
    try:
        datetime.fromisoformat(text.replace("Z", "+00:00"))
        return True
    except ValueError:
        pass
    try:
        date.fromisoformat(text)
        return True
    except ValueError:
        return False


def _parses_as_number(value: Any) -> bool:
    if _is_number(value):
        return math.isfinite(value)
    if isinstance(value, str):
        try:
            return math.isfinite(float(value.strip()))
        except ValueError:
            return False
    return False


def _check_type(question: Question, value: Any) -> ValidationError | None:
    qt = question.question_type

    if qt == "email" and isinstance(value, str):
        if _EMAIL_RE.fullmatch(value) is None:
            return ValidationError(
                field=question.id,
                message="Please enter a valid email address",
                type="format",
            )

    elif qt == "phone" and isinstance(value, str):
        cleaned = _PHONE_SEPARATORS_RE.sub("", value)
        if _PHONE_RE.fullmatch(cleaned) is None:
            return ValidationError(
                field=question.id,
                message="Please enter a valid phone number",
                type="format",
            )

    elif qt == "number":
        if not _parses_as_number(value):
            return ValidationError(
                field=question.id,
                message="Please enter a valid number",
                type="format",
            )

    elif qt in ("date", "date_picker") and isinstance(value, str):
        if not _parses_as_date(value):
            return ValidationError(
                field=question.id,
                message="Please enter a valid date",
                type="format",
            )

    return None
