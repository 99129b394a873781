"""ORM row → API response conversion.

Templates and submissions are returned as the engine's own pydantic models
(``Template``, ``Submission``) with ids rendered as strings, so the HTTP
client parses responses with the same types the engine uses.

Pages and questions are returned as plain dicts carrying the authored JSONB
(options, validation_rules, conditional_logic) verbatim.  The engine parses
those on the client side; re-serialising the parsed variants here would
lose the original spelling of rules the client may understand better.
"""

from typing import Any

from pydantic import BaseModel

from questionnaire_engine.models.catalog import Template
from questionnaire_engine.models.submission import Submission


def _str_id(value: Any) -> str | None:
    return None if value is None else str(value)


def template_to_model(row: Any) -> Template:
    return Template(
        id=str(row.id),
        name=row.name,
        description=row.description,
        total_pages=row.total_pages,
        estimated_completion_minutes=row.estimated_completion_minutes,
        is_active=row.is_active,
        language=row.language,
        introduction_text=row.introduction_text,
        completion_message=row.completion_message,
        created_at=row.created_at,
    )


def question_to_dict(row: Any) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "template_id": _str_id(row.template_id),
        "page_id": _str_id(row.page_id),
        "section": row.section,
        "question_text": row.question_text,
        "question_type": row.question_type,
        "options": row.options or [],
        "validation_rules": row.validation_rules,
        "is_required": row.is_required,
        "order_index": row.order_index,
        "conditional_logic": row.conditional_logic,
        "help_text": row.help_text,
        "placeholder_text": row.placeholder_text,
        "question_group": row.question_group,
        "validation_message": row.validation_message,
        "tooltip_text": row.tooltip_text,
    }


def page_to_dict(row: Any) -> dict[str, Any]:
    questions = sorted(row.questions, key=lambda q: q.order_index)
    return {
        "id": str(row.id),
        "template_id": _str_id(row.template_id),
        "page_number": row.page_number,
        "title": row.title,
        "description": row.description,
        "instruction_text": row.instruction_text,
        "page_type": row.page_type,
        "show_progress": row.show_progress,
        "allow_back_navigation": row.allow_back_navigation,
        "auto_advance": row.auto_advance,
        "questions": [question_to_dict(q) for q in questions],
    }


def submission_to_model(row: Any) -> Submission:
    return Submission(
        id=str(row.id),
        template_id=str(row.template_id),
        submission_token=row.submission_token,
        submission_data=row.submission_data or {},
        is_complete=row.is_complete,
        completion_percentage=row.completion_percentage,
        time_spent_seconds=row.time_spent_seconds,
        created_at=row.created_at,
        updated_at=row.updated_at,
        completed_at=row.completed_at,
    )


class AdminSubmissionView(Submission):
    """Submission plus the request metadata only admins may see."""

    ip_address: str | None = None
    user_agent: str | None = None


def admin_submission_view(row: Any) -> AdminSubmissionView:
    base = submission_to_model(row)
    return AdminSubmissionView(
        **base.model_dump(),
        ip_address=_str_id(row.ip_address),
        user_agent=row.user_agent,
    )


class SubmissionList(BaseModel):
    """Paged admin listing."""

    submissions: list[AdminSubmissionView]
    total: int
    limit: int
    offset: int
