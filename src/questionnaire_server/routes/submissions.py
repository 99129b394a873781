"""Submission lifecycle endpoints — create, read, autosave patch, complete.

A submission is created when a session starts, patched by autosave while
in progress, and completed once.  After completion the row is frozen:
further patches return 409 and repeated completions return the stored row.
Both writers read the row under a row lock, so a PATCH that races a
completion runs after it and sees the completed row.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from questionnaire_db.models.enums import EventType
from questionnaire_db.repository import (
    AnalyticsRepository,
    CatalogRepository,
    SubmissionRepository,
)
from questionnaire_engine.models.submission import Submission

from questionnaire_server.dependencies import (
    get_analytics_repo,
    get_catalog_repo,
    get_client_ip,
    get_db,
    get_submission_repo,
    get_user_agent,
    parse_id,
)
from questionnaire_server.serializers import submission_to_model

logger = logging.getLogger(__name__)

router = APIRouter(tags=["submissions"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class CreateSubmissionRequest(BaseModel):
    """Body for POST /submissions."""
    template_id: str
    submission_token: str = Field(min_length=1)


class UpdateSubmissionRequest(BaseModel):
    """Body for PATCH /submissions/{id}.  Omitted fields are left unchanged."""
    submission_data: dict[str, Any] | None = None
    completion_percentage: int | None = Field(None, ge=0, le=100)
    time_spent_seconds: int | None = Field(None, ge=0)


class CompleteSubmissionRequest(BaseModel):
    """Body for POST /submissions/{id}/complete."""
    submission_data: dict[str, Any] | None = None
    time_spent_seconds: int | None = Field(None, ge=0)


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/submissions", status_code=201)
async def create_submission(
    body: CreateSubmissionRequest,
    ip_address: str | None = Depends(get_client_ip),
    user_agent: str | None = Depends(get_user_agent),
    db: AsyncSession = Depends(get_db),
    catalog: CatalogRepository = Depends(get_catalog_repo),
    repo: SubmissionRepository = Depends(get_submission_repo),
) -> Submission:
    """Start a new submission for an active template."""
    template_pk = parse_id(body.template_id, "Template")
    if await catalog.get_active_template(db, template_pk) is None:
        raise ValueError(f"Template not found: {body.template_id}")

    row = await repo.create_submission(
        db,
        template_id=template_pk,
        submission_token=body.submission_token,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    logger.info("Submission %s created for template %s", row.id, template_pk)
    return submission_to_model(row)


@router.get("/submissions/{submission_id}")
async def get_submission(
    submission_id: str,
    db: AsyncSession = Depends(get_db),
    repo: SubmissionRepository = Depends(get_submission_repo),
) -> Submission:
    row = await repo.get_by_id(db, parse_id(submission_id, "Submission"))
    if row is None:
        raise ValueError(f"Submission not found: {submission_id}")
    return submission_to_model(row)


@router.patch("/submissions/{submission_id}")
async def update_submission(
    submission_id: str,
    body: UpdateSubmissionRequest,
    db: AsyncSession = Depends(get_db),
    repo: SubmissionRepository = Depends(get_submission_repo),
) -> Submission:
    """Autosave.  409 once the submission is completed."""
    row = await repo.get_for_update(db, parse_id(submission_id, "Submission"))
    if row is None:
        raise ValueError(f"Submission not found: {submission_id}")
    row = await repo.update_submission(
        db,
        row,
        submission_data=body.submission_data,
        completion_percentage=body.completion_percentage,
        time_spent_seconds=body.time_spent_seconds,
    )
    return submission_to_model(row)


@router.post("/submissions/{submission_id}/complete")
async def complete_submission(
    submission_id: str,
    body: CompleteSubmissionRequest,
    db: AsyncSession = Depends(get_db),
    repo: SubmissionRepository = Depends(get_submission_repo),
    analytics: AnalyticsRepository = Depends(get_analytics_repo),
) -> Submission:
    """Finalise a submission.  Completing again returns the stored row."""
    row = await repo.get_for_update(db, parse_id(submission_id, "Submission"))
    if row is None:
        raise ValueError(f"Submission not found: {submission_id}")
    if row.is_complete:
        return submission_to_model(row)

    row = await repo.complete_submission(
        db,
        row,
        submission_data=body.submission_data,
        time_spent_seconds=body.time_spent_seconds,
    )
    logger.info("Submission %s completed", row.id)

    # The event lives in a savepoint: if it fails, only the event is rolled back
    try:
        async with db.begin_nested():
            await analytics.record_event(
                db,
                event_type=EventType.QUESTIONNAIRE_COMPLETED.value,
                event_data={
                    "submission_id": str(row.id),
                    "template_id": str(row.template_id),
                    "time_spent_seconds": row.time_spent_seconds,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )
    except Exception:
        logger.warning("Failed to record completion event for %s", row.id, exc_info=True)

    return submission_to_model(row)
