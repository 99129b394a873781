"""Session state model — everything the store tracks for the active attempt.

The model doubles as the persisted snapshot.  Two fields need an explicit
conversion at the persistence boundary:

  - ``visited_pages`` is a set in memory and a sorted list of page numbers
    on the wire
  - ``session_start_time`` / ``last_saved`` are datetimes in memory and
    ISO-8601 strings on the wire

Both conversions are declared below so a restored snapshot yields a proper
set and real datetimes, not lists and strings.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Set

from pydantic import BaseModel, Field, field_serializer, field_validator

from .submission import Answer, Submission


class SessionState(BaseModel):
    """In-progress attempt at a template, owned by one questionnaire session."""

    current_submission: Optional[Submission] = None
    current_template_id: Optional[str] = None
    current_page: int = 1
    total_pages: int = 0
    answers: Dict[str, Answer] = {}
    is_dirty: bool = False
    last_saved: Optional[datetime] = None
    can_navigate_back: bool = False
    can_navigate_forward: bool = False
    visited_pages: Set[int] = Field(default_factory=lambda: {1})
    autosave_enabled: bool = True
    session_start_time: Optional[datetime] = None

    @field_serializer("visited_pages")
    def _visited_to_list(self, pages: Set[int]) -> list[int]:
        return sorted(pages)

    @field_validator("visited_pages", mode="before")
    @classmethod
    def _visited_from_list(cls, raw: Any) -> Any:
        if raw is None:
            return {1}
        return set(raw)
