"""ConditionalEvaluator — decides which questions are visible.

A question with no ``conditional_logic`` is always shown.  Otherwise:

  1. ``show_if`` (if non-empty) is combined with the shared operator; a false
     result hides the question and ``hide_if`` is not evaluated
  2. ``hide_if`` (if non-empty) is combined with the same operator; a true
     result hides the question
  3. otherwise the question is shown

Conditions read ``answers[condition.question_id]``.  A question id with no
answer is treated as an absent value, so a dangling reference never raises;
most operators simply evaluate false against it.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Mapping

from questionnaire_engine.models.question import (
    CONDITION_OPERATORS,
    Condition,
    ConditionalLogic,
    Question,
)
from questionnaire_engine.validation import is_empty

logger = logging.getLogger(__name__)


def _strict_equals(actual: Any, expected: Any) -> bool:
    """Equality that does not conflate booleans with 0/1."""
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    return actual == expected


def _to_text(value: Any) -> str:
    """Stringify an answer the way the browser UI displays it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_number(value: Any) -> float | None:
    """Coerce to a finite float, or None.  Absent and blank values do not coerce."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


class ConditionalEvaluator:
    """Evaluates show/hide rules against the current flat answer mapping.

    *answers* is always ``{question_id: value}``, never the timestamped
    ``Answer`` wrapper.
    """

    def should_show(self, question: Question, answers: Mapping[str, Any]) -> bool:
        """Return True if *question* is visible for the given answers."""
        logic = question.conditional_logic
        if logic is None:
            return True

        if logic.show_if:
            if not self._combine(logic.show_if, logic.operator, answers):
                return False

        if logic.hide_if:
            if self._combine(logic.hide_if, logic.operator, answers):
                return False

        return True

    def visible_questions(
        self, questions: Iterable[Question], answers: Mapping[str, Any]
    ) -> list[Question]:
        """Filter *questions* to the visible ones, preserving order."""
        return [q for q in questions if self.should_show(q, answers)]

    def dependent_questions(
        self, target_id: str, questions: Iterable[Question]
    ) -> list[Question]:
        """Return every question whose show_if/hide_if references *target_id*.

        When one answer changes, only these need re-evaluating.
        """
        dependents = []
        for q in questions:
            logic = q.conditional_logic
            if logic is None:
                continue
            if any(c.question_id == target_id for c in logic.conditions):
                dependents.append(q)
        return dependents

    # ------------------------------------------------------------------
    # Condition evaluation
    # ------------------------------------------------------------------

    def _combine(
        self, conditions: list[Condition], operator: str, answers: Mapping[str, Any]
    ) -> bool:
        results = (self.evaluate_condition(c, answers) for c in conditions)
        if operator == "OR":
            return any(results)
        return all(results)

    def evaluate_condition(self, condition: Condition, answers: Mapping[str, Any]) -> bool:
        """Evaluate one condition.  Never raises; uninterpretable conditions are false."""
        if condition.operator == "unsupported":
            logger.debug(
                "Unsupported condition on %s (operator=%r) evaluated false",
                condition.question_id, condition.raw_operator,
            )
            return False
        actual = answers.get(condition.question_id)
        return self._compare(condition.operator, actual, condition.value)

    @staticmethod
    def _compare(op: str, actual: Any, expected: Any) -> bool:
        if op == "equals":
            if isinstance(actual, (list, tuple)):
                return any(_strict_equals(v, expected) for v in actual)
            return _strict_equals(actual, expected)

        if op == "not_equals":
            if isinstance(actual, (list, tuple)):
                return not any(_strict_equals(v, expected) for v in actual)
            return not _strict_equals(actual, expected)

        if op == "contains":
            needle = _to_text(expected).lower()
            if isinstance(actual, (list, tuple)):
                return any(needle in _to_text(v).lower() for v in actual)
            return needle in _to_text(actual).lower()

        if op in ("greater_than", "less_than"):
            lhs = _to_number(actual)
            rhs = _to_number(expected)
            if lhs is None or rhs is None:
                return False
            return lhs > rhs if op == "greater_than" else lhs < rhs

        if op == "is_empty":
            return is_empty(actual)

        if op == "is_not_empty":
            return not is_empty(actual)

        logger.warning("Unknown condition operator: %s", op)
        return False


def validate_conditional_logic(
    logic: ConditionalLogic, questions: Iterable[Question]
) -> list[str]:
    """Check a question's logic against its template; return readable issues.

    Used at catalog-load time.  An empty list means the logic is sound.
    """
    known_ids = {q.id for q in questions}
    issues: list[str] = []

    for kind, conditions in (("show_if", logic.show_if), ("hide_if", logic.hide_if)):
        for index, condition in enumerate(conditions, start=1):
            where = f"{kind} condition {index}"
            if condition.operator not in CONDITION_OPERATORS:
                issues.append(f"{where}: unsupported operator {condition.raw_operator!r}")
                continue
            if condition.question_id not in known_ids:
                issues.append(
                    f'{where}: Question ID "{condition.question_id}" does not exist'
                )
            if condition.operator not in ("is_empty", "is_not_empty") and condition.value is None:
                issues.append(f"{where}: Missing value")

    return issues
