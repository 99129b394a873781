"""Analytics endpoint — fire-and-forget event recording."""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from questionnaire_db.repository import AnalyticsRepository

from questionnaire_server.dependencies import get_analytics_repo, get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analytics"])


@router.post("/analytics")
async def track_event(
    body: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    repo: AnalyticsRepository = Depends(get_analytics_repo),
) -> dict:
    """Record ``{event, template_id, ...}``.  400 when either field is missing.

    The whole body is stored as the event data; ``timestamp`` defaults to
    the server time.
    """
    event = body.get("event")
    template_id = body.get("template_id")
    if not event or not template_id:
        raise ValueError("Invalid analytics event: event and template_id are required")

    data = {**body, "timestamp": body.get("timestamp") or datetime.now(timezone.utc).isoformat()}
    await repo.record_event(db, event_type=str(event), event_data=data)
    logger.debug("Analytics event %s for template %s", event, template_id)
    return {"success": True}
