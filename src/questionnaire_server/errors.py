"""Global exception handlers — map repository/route exceptions to HTTP codes.

Routes and repositories raise ``ValueError`` with a recognisable phrase in
the message instead of building HTTP responses themselves.  The handlers
here pick the status code from that phrase.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# Checked in order; first match wins
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    ("not found", 404),
    ("already", 409),
    ("invalid", 400),
]

# Raw messages may carry ids and stay in the server log
_SAFE_MESSAGES: dict[int, str] = {
    404: "Resource not found",
    409: "Submission is already completed",
    400: "Invalid request",
}


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Map ``ValueError`` to 404 / 409 / 400 by message keyword (default 400)."""
    msg = str(exc)
    status = 400
    for pattern, code in _VALUE_ERROR_PATTERNS:
        if pattern in msg.lower():
            status = code
            break

    logger.warning("ValueError [%d] at %s: %s", status, request.url, msg)
    return JSONResponse(status_code=status, content={"detail": _SAFE_MESSAGES[status]})


async def key_error_handler(request: Request, exc: KeyError) -> JSONResponse:
    logger.warning("KeyError at %s: %s", request.url, exc)
    return JSONResponse(status_code=404, content={"detail": "Resource not found"})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all — log the traceback, return a generic 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
