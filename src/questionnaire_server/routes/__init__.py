"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from questionnaire_server.routes.admin import router as admin_router
from questionnaire_server.routes.analytics import router as analytics_router
from questionnaire_server.routes.pages import router as pages_router
from questionnaire_server.routes.submissions import router as submissions_router
from questionnaire_server.routes.templates import router as templates_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(templates_router, prefix=API_PREFIX)
    app.include_router(pages_router, prefix=API_PREFIX)
    app.include_router(submissions_router, prefix=API_PREFIX)
    app.include_router(analytics_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)
