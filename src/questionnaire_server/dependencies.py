"""FastAPI dependencies — DB session, repositories, settings, client metadata.

Repositories are returned by small provider functions so tests can swap in
in-memory fakes through ``app.dependency_overrides``.
"""

import hmac
import ipaddress
import uuid
from typing import AsyncGenerator

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from questionnaire_db.engine import get_session_factory
from questionnaire_db.repository import (
    AnalyticsRepository,
    CatalogRepository,
    SubmissionRepository,
)

from questionnaire_server.config import ServerSettings


# ------------------------------------------------------------------
# Database session (transaction boundary)
# ------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session; commit on success, rollback on error.

    Repository methods ``flush()`` but never ``commit()``, so this is the
    single place a request's writes are finalised.
    """
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ------------------------------------------------------------------
# Repositories and settings
# ------------------------------------------------------------------

_catalog_repo = CatalogRepository()
_submission_repo = SubmissionRepository()
_analytics_repo = AnalyticsRepository()


def get_catalog_repo() -> CatalogRepository:
    return _catalog_repo


def get_submission_repo() -> SubmissionRepository:
    return _submission_repo


def get_analytics_repo() -> AnalyticsRepository:
    return _analytics_repo


def get_settings(request: Request) -> ServerSettings:
    return request.app.state.settings


# ------------------------------------------------------------------
# Request metadata
# ------------------------------------------------------------------

def get_client_ip(request: Request) -> str | None:
    """Best-effort client IP: X-Forwarded-For (first hop), X-Real-IP, then the socket.

    Values that are not IP addresses are discarded.
    """
    candidates = []
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        candidates.append(forwarded.split(",")[0].strip())
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        candidates.append(real_ip.strip())
    if request.client is not None:
        candidates.append(request.client.host)

    for candidate in candidates:
        try:
            return str(ipaddress.ip_address(candidate))
        except ValueError:
            continue
    return None


def get_user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent")


def parse_id(raw: str, kind: str) -> uuid.UUID:
    """Parse a path id.  A malformed id cannot exist, so it reports "not found"."""
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise ValueError(f"{kind} not found: {raw}") from None


# ------------------------------------------------------------------
# Admin auth
# ------------------------------------------------------------------

async def require_admin_key(
    request: Request,
    x_admin_key: str | None = Header(None, alias="X-Admin-Key"),
) -> str:
    """Check ``X-Admin-Key`` against ``ADMIN_API_KEY``.

    403 when admin endpoints are disabled or the key is wrong, 401 when the
    header is missing.
    """
    expected = request.app.state.settings.admin_api_key
    if not expected:
        raise HTTPException(
            status_code=403,
            detail="Admin endpoints are disabled (ADMIN_API_KEY not configured)",
        )
    if not x_admin_key:
        raise HTTPException(status_code=401, detail="X-Admin-Key header is required")
    if not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=403, detail="Invalid admin key")
    return x_admin_key
