"""ORM models for questionnaire_db."""

from questionnaire_db.models.analytics import AnalyticsEvent
from questionnaire_db.models.base import Base
from questionnaire_db.models.enums import EventType, PageType
from questionnaire_db.models.submission import QuestionnaireSubmission
from questionnaire_db.models.template import (
    QuestionnairePage,
    QuestionnaireQuestion,
    QuestionnaireTemplate,
)

__all__ = [
    "Base",
    "EventType",
    "PageType",
    "AnalyticsEvent",
    "QuestionnaireSubmission",
    "QuestionnaireTemplate",
    "QuestionnairePage",
    "QuestionnaireQuestion",
]
