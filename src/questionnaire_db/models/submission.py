"""QuestionnaireSubmission ORM model — one row per attempt.

The whole answer mapping lives in one JSONB column so an autosave is a
single-row update and a resumed session needs no joins.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import INET, JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from questionnaire_db.models.base import Base, utcnow


class QuestionnaireSubmission(Base):
    """An in-progress or completed attempt at a template."""

    __tablename__ = "questionnaire_submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("questionnaire_templates.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Client-generated resume key; not unique (see DESIGN.md)
    submission_token: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    # {question_id: {"question_id", "value", "page_id", "answered_at"}}
    submission_data: Mapped[dict] = mapped_column(
        JSONB, nullable=False, server_default=text("'{}'::jsonb"), default=dict
    )
    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completion_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_spent_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # --- Request metadata ---
    ip_address: Mapped[str | None] = mapped_column(INET, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "completion_percentage BETWEEN 0 AND 100",
            name="ck_completion_percentage_range",
        ),
        CheckConstraint(
            "NOT is_complete OR completed_at IS NOT NULL",
            name="ck_completed_has_timestamp",
        ),
        CheckConstraint(
            "NOT is_complete OR completion_percentage = 100",
            name="ck_completed_is_full",
        ),
        Index("ix_submissions_template_created", "template_id", "created_at"),
        # Cleanup scans abandoned rows by age
        Index(
            "ix_submissions_incomplete_updated",
            "updated_at",
            postgresql_where=text("NOT is_complete"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<QuestionnaireSubmission(id={self.id!s}, template={self.template_id!s}, "
            f"complete={self.is_complete}, pct={self.completion_percentage})>"
        )
