"""Template catalog endpoints — list active templates, fetch one."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from questionnaire_db.repository import CatalogRepository
from questionnaire_engine.models.catalog import Template

from questionnaire_server.dependencies import get_catalog_repo, get_db, parse_id
from questionnaire_server.serializers import template_to_model

router = APIRouter(tags=["templates"])


@router.get("/templates")
async def list_templates(
    db: AsyncSession = Depends(get_db),
    repo: CatalogRepository = Depends(get_catalog_repo),
) -> dict:
    """Active templates, newest first."""
    rows = await repo.list_active_templates(db)
    templates = [template_to_model(r) for r in rows]
    return {"templates": templates, "count": len(templates)}


@router.get("/templates/{template_id}")
async def get_template(
    template_id: str,
    db: AsyncSession = Depends(get_db),
    repo: CatalogRepository = Depends(get_catalog_repo),
) -> Template:
    """One active template.  404 if it does not exist or is inactive."""
    row = await repo.get_active_template(db, parse_id(template_id, "Template"))
    if row is None:
        raise ValueError(f"Template not found: {template_id}")
    return template_to_model(row)
