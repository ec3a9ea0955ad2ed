"""Exception handlers turning translation errors into JSON error envelopes.

Every error response has the shape::

    {"error": {"code": ..., "message": ..., "status_code": ...}}

Pipeline errors add the failing ``stage``. Provider failures add
``retryable`` and, when the circuit breaker is open, a ``Retry-After`` header.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from polyglot.core.exceptions import (
    BaseAppException,
    PipelineError,
    TranslationFailureError,
)

logger = logging.getLogger(__name__)


def error_envelope(exc: BaseAppException) -> Dict[str, Any]:
    error: Dict[str, Any] = {
        "code": exc.error_code,
        "message": exc.detail,
        "status_code": exc.status_code,
    }
    if isinstance(exc, PipelineError):
        error["stage"] = exc.stage_name
    elif isinstance(exc, TranslationFailureError):
        error["retryable"] = True
        if exc.retry_after is not None:
            error["retry_after_seconds"] = exc.retry_after
    return {"error": error}


def _response_headers(exc: BaseAppException) -> Optional[Dict[str, str]]:
    headers = dict(exc.headers or {})
    if isinstance(exc, TranslationFailureError) and exc.retry_after is not None:
        headers["Retry-After"] = str(exc.retry_after)
    return headers or None


async def base_exception_handler(
    request: Request, exc: BaseAppException
) -> JSONResponse:
    """Render an application error.

    Client errors (4xx) log at warning level; server and provider errors at
    error level, with the pipeline stage when there is one.
    """
    stage = getattr(exc, "stage_name", None)
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{request.method} {request.url.path} -> {exc.status_code} "
        f"{exc.error_code}{f' at {stage}' if stage else ''}: {exc.detail}"
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc),
        headers=_response_headers(exc),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Details stay in the log; translated content may be sensitive
    logger.exception(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred",
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            }
        },
    )
