"""Admin endpoints — read-only submission views and abandoned-row cleanup.

Every request must carry an ``X-Admin-Key`` header matching
``ADMIN_API_KEY``.  Returns 401 if missing, 403 if wrong or if admin
endpoints are disabled.
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from questionnaire_db.repository import SubmissionRepository

from questionnaire_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, ServerSettings
from questionnaire_server.dependencies import (
    get_db,
    get_settings,
    get_submission_repo,
    parse_id,
    require_admin_key,
)
from questionnaire_server.serializers import (
    AdminSubmissionView,
    SubmissionList,
    admin_submission_view,
)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_key)])


class CleanupResult(BaseModel):
    """Response body for cleanup operations."""
    affected_rows: int
    action: str
    older_than_days: int


@router.get("/submissions")
async def list_submissions(
    template_id: str | None = Query(None),
    is_complete: bool | None = Query(None),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    repo: SubmissionRepository = Depends(get_submission_repo),
) -> SubmissionList:
    """Submissions newest first, optionally filtered by template and completion."""
    template_pk = parse_id(template_id, "Template") if template_id else None
    rows, total = await repo.list_submissions(
        db,
        template_id=template_pk,
        is_complete=is_complete,
        limit=limit,
        offset=offset,
    )
    return SubmissionList(
        submissions=[admin_submission_view(r) for r in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/submissions/{submission_id}")
async def get_submission(
    submission_id: str,
    db: AsyncSession = Depends(get_db),
    repo: SubmissionRepository = Depends(get_submission_repo),
) -> AdminSubmissionView:
    row = await repo.get_by_id(db, parse_id(submission_id, "Submission"))
    if row is None:
        raise ValueError(f"Submission not found: {submission_id}")
    return admin_submission_view(row)


@router.post("/cleanup/abandoned")
async def cleanup_abandoned(
    older_than_days: int | None = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    repo: SubmissionRepository = Depends(get_submission_repo),
    settings: ServerSettings = Depends(get_settings),
) -> CleanupResult:
    """Delete incomplete submissions untouched for *older_than_days*.

    Defaults to ``SUBMISSION_TTL_DAYS``; ``0`` removes every incomplete row.
    """
    days = settings.submission_ttl_days if older_than_days is None else older_than_days
    affected = await repo.purge_abandoned(db, older_than_days=days)
    return CleanupResult(affected_rows=affected, action="purge_abandoned", older_than_days=days)
