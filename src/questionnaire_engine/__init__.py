"""questionnaire_engine — multi-page questionnaire SDK.

Public API:
    QuestionnaireSession   — state store for one in-progress attempt
    AutosaveCoordinator    — periodic / manual / before-teardown saving
    QuestionnaireFlow      — page driver: visibility, validation, navigation
    QuestionnaireCatalog   — template + ordered pages + questions
    ConditionalEvaluator   — show_if / hide_if evaluation
    NavigationGuard        — save-before-leave policy
    HttpQuestionnaireClient — httpx client for the REST API

Validation:
    validate_answer        — single question -> ValidationError | None
    validate_answers       — page of questions -> {question_id: message}
    can_navigate_from_page — every required question answered?

Scheduling and storage:
    AsyncioScheduler / ManualScheduler — real and virtual clocks
    InMemorySessionStorage — session-scoped snapshot storage
"""

from questionnaire_engine.autosave import AutosaveCoordinator, TeardownResult
from questionnaire_engine.catalog import QuestionnaireCatalog, load_catalog_yaml
from questionnaire_engine.errors import (
    CatalogError,
    ConfigurationError,
    NetworkError,
    QuestionnaireError,
    StateInvariantViolation,
)
from questionnaire_engine.evaluator import ConditionalEvaluator, validate_conditional_logic
from questionnaire_engine.flow import NavigationResult, QuestionnaireFlow
from questionnaire_engine.http_client import HttpQuestionnaireClient
from questionnaire_engine.interfaces import AnalyticsClient, CatalogClient, SubmissionClient
from questionnaire_engine.navigation import KeyEvent, NavAction, NavigationGuard, resolve_key
from questionnaire_engine.scheduling import AsyncioScheduler, ManualScheduler, Scheduler
from questionnaire_engine.session import QuestionnaireSession, SessionStatus
from questionnaire_engine.storage import InMemorySessionStorage, SessionStorage
from questionnaire_engine.validation import (
    can_navigate_from_page,
    is_empty,
    validate_answer,
    validate_answers,
)

__all__ = [
    # Session & autosave
    "QuestionnaireSession",
    "SessionStatus",
    "AutosaveCoordinator",
    "TeardownResult",
    # Catalog & flow
    "QuestionnaireCatalog",
    "load_catalog_yaml",
    "QuestionnaireFlow",
    "NavigationResult",
    "ConditionalEvaluator",
    "validate_conditional_logic",
    # Navigation
    "NavigationGuard",
    "KeyEvent",
    "NavAction",
    "resolve_key",
    # Collaborators
    "CatalogClient",
    "SubmissionClient",
    "AnalyticsClient",
    "HttpQuestionnaireClient",
    # Scheduling & storage
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "SessionStorage",
    "InMemorySessionStorage",
    # Validation
    "validate_answer",
    "validate_answers",
    "can_navigate_from_page",
    "is_empty",
    # Errors
    "QuestionnaireError",
    "NetworkError",
    "CatalogError",
    "StateInvariantViolation",
    "ConfigurationError",
]
