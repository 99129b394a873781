"""Template and page models — the read-only catalog the engine renders.

Pages belong to exactly one template and are numbered 1..N without gaps.
Questions inside a page are kept sorted by ``order_index``; ties keep their
catalog order.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .question import Question

PageType = Literal["intro", "standard", "photo_upload", "summary"]


class Template(BaseModel):
    """A named, multi-page questionnaire definition."""

    id: str
    name: str
    description: Optional[str] = None
    total_pages: int = 0
    estimated_completion_minutes: Optional[int] = None
    is_active: bool = True
    language: str = "en"
    introduction_text: Optional[str] = None
    completion_message: Optional[str] = None
    created_at: Optional[datetime] = None


class Page(BaseModel):
    """One ordered section of a template."""

    id: str
    template_id: Optional[str] = None
    page_number: int = Field(ge=1)
    title: str = ""
    description: Optional[str] = None
    instruction_text: Optional[str] = None
    page_type: PageType = "standard"
    show_progress: bool = True
    allow_back_navigation: bool = True
    auto_advance: bool = False
    questions: List[Question] = []

    @field_validator("questions")
    @classmethod
    def _order_questions(cls, questions: List[Question]) -> List[Question]:
        return sorted(questions, key=lambda q: q.order_index)
