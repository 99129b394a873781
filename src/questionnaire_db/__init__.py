"""questionnaire_db — PostgreSQL persistence for templates and submissions.

Provides the ORM models, the lazily created async engine, and repositories
consumed by the FastAPI server, the cleanup CLI and the seed script.
"""

from questionnaire_db.engine import dispose_engine, get_engine, get_session_factory
from questionnaire_db.models import (
    AnalyticsEvent,
    QuestionnairePage,
    QuestionnaireQuestion,
    QuestionnaireSubmission,
    QuestionnaireTemplate,
)
from questionnaire_db.repository import (
    AnalyticsRepository,
    CatalogRepository,
    SubmissionRepository,
)

__all__ = [
    "AnalyticsEvent",
    "QuestionnairePage",
    "QuestionnaireQuestion",
    "QuestionnaireSubmission",
    "QuestionnaireTemplate",
    "get_engine",
    "get_session_factory",
    "dispose_engine",
    "AnalyticsRepository",
    "CatalogRepository",
    "SubmissionRepository",
]
