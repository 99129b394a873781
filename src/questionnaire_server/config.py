"""Server configuration — reads settings from environment variables.

All settings have defaults suitable for local development.
"""

import os
from dataclasses import dataclass, field

# Module-level so FastAPI Query() defaults can reference them
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "100"))


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    log_level: str = "INFO"

    # Incomplete submissions untouched for this many days count as abandoned
    submission_ttl_days: int = 30

    # Shared secret for admin endpoints (None = admin endpoints disabled)
    admin_api_key: str | None = None


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8000")),
        cors_origins=origins,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        submission_ttl_days=int(os.getenv("SUBMISSION_TTL_DAYS", "30")),
        admin_api_key=os.getenv("ADMIN_API_KEY") or None,
    )
