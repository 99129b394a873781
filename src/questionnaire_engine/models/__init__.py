"""Public model re-exports for questionnaire_engine.

Consumers should import from ``questionnaire_engine.models`` rather than
reaching into sub-modules directly.
"""

# --- Questions ---
from questionnaire_engine.models.question import (
    CONDITION_OPERATORS,
    Condition,
    ConditionalLogic,
    ContainsCondition,
    EqualsCondition,
    GreaterThanCondition,
    IsEmptyCondition,
    IsNotEmptyCondition,
    LessThanCondition,
    NotEqualsCondition,
    Question,
    QuestionOption,
    UnsupportedCondition,
    ValidationRules,
)

# --- Catalog ---
from questionnaire_engine.models.catalog import Page, PageType, Template

# --- Submission ---
from questionnaire_engine.models.submission import Answer, Submission

# --- Validation ---
from questionnaire_engine.models.validation import ValidationError, ValidationKind

# --- Session ---
from questionnaire_engine.models.session import SessionState

__all__ = [
    # Questions
    "CONDITION_OPERATORS",
    "Condition",
    "ConditionalLogic",
    "ContainsCondition",
    "EqualsCondition",
    "GreaterThanCondition",
    "IsEmptyCondition",
    "IsNotEmptyCondition",
    "LessThanCondition",
    "NotEqualsCondition",
    "Question",
    "QuestionOption",
    "UnsupportedCondition",
    "ValidationRules",
    # Catalog
    "Page",
    "PageType",
    "Template",
    # Submission
    "Answer",
    "Submission",
    # Validation
    "ValidationError",
    "ValidationKind",
    # Session
    "SessionState",
]
