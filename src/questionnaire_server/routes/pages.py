"""Pages endpoint — a template's ordered pages with their questions."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from questionnaire_db.repository import CatalogRepository

from questionnaire_server.dependencies import get_catalog_repo, get_db, parse_id
from questionnaire_server.serializers import page_to_dict

router = APIRouter(tags=["pages"])


@router.get("/pages/{template_id}")
async def get_pages(
    template_id: str,
    db: AsyncSession = Depends(get_db),
    repo: CatalogRepository = Depends(get_catalog_repo),
) -> dict:
    """Pages ordered by page_number, questions ordered by order_index.

    404 if the template does not exist or is inactive.
    """
    template_pk = parse_id(template_id, "Template")
    if await repo.get_active_template(db, template_pk) is None:
        raise ValueError(f"Template not found: {template_id}")
    pages = await repo.list_pages_with_questions(db, template_pk)
    return {"pages": [page_to_dict(p) for p in pages], "total_pages": len(pages)}
