"""Async repositories for the catalog, submissions and analytics tables.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries.  Methods ``flush()`` but never ``commit()``; the
server's ``get_db`` dependency (or the cleanup CLI) owns the commit.

Business validation of answers belongs to the engine.  The repositories do
enforce the one rule that protects stored state: a completed submission is
never modified again.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from questionnaire_db.models.analytics import AnalyticsEvent
from questionnaire_db.models.submission import QuestionnaireSubmission
from questionnaire_db.models.template import (
    QuestionnairePage,
    QuestionnaireQuestion,
    QuestionnaireTemplate,
)


# ======================================================================
# Catalog
# ======================================================================


class CatalogRepository:
    """Read access to templates, pages and questions, plus seeding."""

    async def list_active_templates(self, db: AsyncSession) -> list[QuestionnaireTemplate]:
        """Active templates, newest first."""
        stmt = (
            select(QuestionnaireTemplate)
            .where(QuestionnaireTemplate.is_active.is_(True))
            .order_by(QuestionnaireTemplate.created_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_active_template(
        self, db: AsyncSession, template_id: uuid.UUID
    ) -> QuestionnaireTemplate | None:
        """Return the template if it exists and is active."""
        template = await db.get(QuestionnaireTemplate, template_id)
        if template is None or not template.is_active:
            return None
        return template

    async def list_pages_with_questions(
        self, db: AsyncSession, template_id: uuid.UUID
    ) -> list[QuestionnairePage]:
        """Pages ordered by page_number with questions ordered by order_index."""
        stmt = (
            select(QuestionnairePage)
            .where(QuestionnairePage.template_id == template_id)
            .options(selectinload(QuestionnairePage.questions))
            .order_by(QuestionnairePage.page_number)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def create_template(
        self,
        db: AsyncSession,
        *,
        template: dict[str, Any],
        pages: list[dict[str, Any]],
    ) -> QuestionnaireTemplate:
        """Insert a template with its pages and questions.

        *template* and each page/question dict use the column names of the
        ORM models; a ``questions`` list on each page is expanded into
        ``QuestionnaireQuestion`` rows.  A question ``id`` must already be a
        UUID (conditional logic refers to it); other unknown keys are ignored.
        """
        row = QuestionnaireTemplate(
            **_pick(template, _TEMPLATE_FIELDS),
            total_pages=len(pages),
        )
        db.add(row)
        await db.flush()

        for raw_page in pages:
            page = QuestionnairePage(template_id=row.id, **_pick(raw_page, _PAGE_FIELDS))
            db.add(page)
            await db.flush()
            for raw_q in raw_page.get("questions") or []:
                db.add(
                    QuestionnaireQuestion(
                        template_id=row.id,
                        page_id=page.id,
                        **_pick(raw_q, _QUESTION_FIELDS),
                    )
                )
        await db.flush()
        return row


_TEMPLATE_FIELDS = (
    "name", "description", "estimated_completion_minutes", "is_active",
    "language", "introduction_text", "completion_message",
)
_PAGE_FIELDS = (
    "page_number", "title", "description", "instruction_text", "page_type",
    "show_progress", "allow_back_navigation", "auto_advance",
)
_QUESTION_FIELDS = (
    "id", "section", "question_text", "question_type", "is_required", "order_index",
    "options", "validation_rules", "conditional_logic", "help_text",
    "placeholder_text", "question_group", "validation_message", "tooltip_text",
)


def _pick(data: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    return {k: data[k] for k in fields if k in data}


# ======================================================================
# Submissions
# ======================================================================


class SubmissionRepository:
    """Async read/write operations on ``questionnaire_submissions``."""

    # ------------------------------------------------------------------
    # Create / read
    # ------------------------------------------------------------------

    async def create_submission(
        self,
        db: AsyncSession,
        *,
        template_id: uuid.UUID,
        submission_token: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> QuestionnaireSubmission:
        """Insert a new, empty submission and return it with its id."""
        submission = QuestionnaireSubmission(
            template_id=template_id,
            submission_token=submission_token,
            submission_data={},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(submission)
        await db.flush()
        return submission

    async def get_by_id(
        self, db: AsyncSession, submission_id: uuid.UUID
    ) -> QuestionnaireSubmission | None:
        return await db.get(QuestionnaireSubmission, submission_id)

    async def get_for_update(
        self, db: AsyncSession, submission_id: uuid.UUID
    ) -> QuestionnaireSubmission | None:
        """Load a submission with a row lock held until the transaction ends.

        Writers (autosave PATCH, completion) read through here so they
        serialise on the row: a PATCH queued behind a completion sees
        ``is_complete`` once it gets the lock and is rejected.
        """
        return await db.get(
            QuestionnaireSubmission,
            submission_id,
            with_for_update=True,
            populate_existing=True,
        )

    async def list_submissions(
        self,
        db: AsyncSession,
        *,
        template_id: uuid.UUID | None = None,
        is_complete: bool | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[QuestionnaireSubmission], int]:
        """Return one page of submissions (newest first) and the total count."""
        filters = []
        if template_id is not None:
            filters.append(QuestionnaireSubmission.template_id == template_id)
        if is_complete is not None:
            filters.append(QuestionnaireSubmission.is_complete.is_(is_complete))

        stmt = (
            select(QuestionnaireSubmission)
            .where(*filters)
            .order_by(QuestionnaireSubmission.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        rows = list((await db.execute(stmt)).scalars().all())

        count_stmt = select(func.count()).select_from(QuestionnaireSubmission).where(*filters)
        total = (await db.execute(count_stmt)).scalar_one()
        return rows, total

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def update_submission(
        self,
        db: AsyncSession,
        submission: QuestionnaireSubmission,
        *,
        submission_data: dict[str, Any] | None = None,
        completion_percentage: int | None = None,
        time_spent_seconds: int | None = None,
    ) -> QuestionnaireSubmission:
        """Apply a partial update; ``None`` fields are left unchanged.

        Raises ``ValueError`` if the submission is already complete, so a
        late autosave cannot overwrite the completed state.
        """
        if submission.is_complete:
            raise ValueError(f"Submission {submission.id} is already completed")

        if submission_data is not None:
            submission.submission_data = dict(submission_data)
        if completion_percentage is not None:
            submission.completion_percentage = completion_percentage
        if time_spent_seconds is not None:
            submission.time_spent_seconds = time_spent_seconds
        submission.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return submission

    async def complete_submission(
        self,
        db: AsyncSession,
        submission: QuestionnaireSubmission,
        *,
        submission_data: dict[str, Any] | None = None,
        time_spent_seconds: int | None = None,
    ) -> QuestionnaireSubmission:
        """Mark complete at 100% and stamp ``completed_at``.

        Completing twice returns the stored row unchanged; the first
        completion's data and timestamp win.
        """
        if submission.is_complete:
            return submission

        now = datetime.now(timezone.utc)
        if submission_data is not None:
            submission.submission_data = dict(submission_data)
        if time_spent_seconds is not None:
            submission.time_spent_seconds = time_spent_seconds
        submission.is_complete = True
        submission.completion_percentage = 100
        submission.completed_at = now
        submission.updated_at = now
        await db.flush()
        return submission

    # ------------------------------------------------------------------
    # Bulk maintenance
    # ------------------------------------------------------------------

    async def purge_abandoned(self, db: AsyncSession, *, older_than_days: int) -> int:
        """Delete incomplete submissions not touched for *older_than_days*.

        ``0`` removes every incomplete submission.  Returns the row count.
        """
        stmt = delete(QuestionnaireSubmission).where(
            QuestionnaireSubmission.is_complete.is_(False)
        )
        if older_than_days > 0:
            cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
            stmt = stmt.where(QuestionnaireSubmission.updated_at < cutoff)
        result = await db.execute(stmt)
        await db.flush()
        return result.rowcount or 0


# ======================================================================
# Analytics
# ======================================================================


class AnalyticsRepository:
    """Append-only writes to ``analytics_events``."""

    async def record_event(
        self, db: AsyncSession, *, event_type: str, event_data: dict[str, Any]
    ) -> AnalyticsEvent:
        event = AnalyticsEvent(event_type=event_type, event_data=dict(event_data))
        db.add(event)
        await db.flush()
        return event
