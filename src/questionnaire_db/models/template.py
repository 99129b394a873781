"""Catalog ORM models — templates, pages and questions.

The catalog is read-only at runtime.  Rows are written by the seed script
(or an admin tool) and read by the template and pages endpoints.  Question
options, validation rules and conditional logic are stored as JSONB exactly
as authored; the engine parses them into typed variants when it loads them.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questionnaire_db.models.base import Base, utcnow
from questionnaire_db.models.enums import PageType


class QuestionnaireTemplate(Base):
    """A named multi-page questionnaire definition."""

    __tablename__ = "questionnaire_templates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_pages: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    estimated_completion_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Inactive templates are hidden from the public catalog
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    language: Mapped[str] = mapped_column(
        String(10), nullable=False, default="en", server_default=text("'en'")
    )
    introduction_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    completion_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    pages: Mapped[list["QuestionnairePage"]] = relationship(
        back_populates="template",
        order_by="QuestionnairePage.page_number",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index(
            "ix_templates_active_created",
            "created_at",
            postgresql_where=text("is_active"),
        ),
    )

    def __repr__(self) -> str:
        return f"<QuestionnaireTemplate(id={self.id!s}, name={self.name!r})>"


class QuestionnairePage(Base):
    """One ordered section of a template."""

    __tablename__ = "questionnaire_pages"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("questionnaire_templates.id", ondelete="CASCADE"),
        nullable=False,
    )
    page_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    instruction_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    page_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PageType.STANDARD.value
    )
    show_progress: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allow_back_navigation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    auto_advance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    template: Mapped[QuestionnaireTemplate] = relationship(back_populates="pages")
    questions: Mapped[list["QuestionnaireQuestion"]] = relationship(
        back_populates="page",
        order_by="QuestionnaireQuestion.order_index",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        # Pages are numbered 1..N once per template
        UniqueConstraint("template_id", "page_number", name="uq_template_page_number"),
    )

    def __repr__(self) -> str:
        return f"<QuestionnairePage(template={self.template_id!s}, number={self.page_number})>"


class QuestionnaireQuestion(Base):
    """A single prompt within a page."""

    __tablename__ = "questionnaire_questions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("questionnaire_templates.id", ondelete="CASCADE"),
        nullable=False,
    )
    page_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("questionnaire_pages.id", ondelete="CASCADE"),
        nullable=False,
    )
    section: Mapped[str | None] = mapped_column(Text, nullable=True)
    question_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    question_type: Mapped[str] = mapped_column(String(30), nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # --- Authored JSON ---
    # [{"id": ..., "label": ..., "value": ..., "isOther": bool}, ...]
    options: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    # {"minLength": .., "maxLength": .., "min": .., "max": .., "pattern": .., ...}
    validation_rules: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    # {"show_if": [...], "hide_if": [...], "operator": "AND" | "OR"}
    conditional_logic: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    help_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    placeholder_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    question_group: Mapped[str | None] = mapped_column(Text, nullable=True)
    validation_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    tooltip_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    page: Mapped[QuestionnairePage] = relationship(back_populates="questions")

    __table_args__ = (
        Index("ix_questions_page_order", "page_id", "order_index"),
        Index("ix_questions_template", "template_id"),
    )

    def __repr__(self) -> str:
        return f"<QuestionnaireQuestion(id={self.id!s}, type={self.question_type!r})>"
