"""Submission and answer models — the persisted unit of work.

A submission is created when a session starts, patched by autosave, and
finalised exactly once by the completion call.  ``submission_data`` holds the
whole answer mapping for the template, not just the current page, because
conditional logic can reference answers on other pages.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from questionnaire_engine.constants import TEMP_ID_PREFIX


class Answer(BaseModel):
    """The current value for one question plus when it was last changed."""

    question_id: str
    value: Any = None
    page_id: Optional[str] = None
    answered_at: datetime


class Submission(BaseModel):
    """One attempt at a template, as stored by the submission collaborator."""

    id: str
    template_id: str
    submission_token: str
    submission_data: dict[str, Any] = {}
    is_complete: bool = False
    completion_percentage: int = Field(0, ge=0, le=100)
    time_spent_seconds: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_temporary(self) -> bool:
        """True while the id is a local placeholder the server has never seen."""
        return self.id.startswith(TEMP_ID_PREFIX)
