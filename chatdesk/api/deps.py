"""
Shared API dependencies and error mapping.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from ..core.context import ChatContext
from ..core.exceptions import (
    AuthError,
    BadRequest,
    ChatDeskError,
    CredentialsMissing,
    IngestionBusy,
    RateLimited,
    ServiceUnavailable,
    TransportError,
    UnknownSession,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = [
    (UnknownSession, status.HTTP_404_NOT_FOUND),
    (CredentialsMissing, status.HTTP_412_PRECONDITION_FAILED),
    (IngestionBusy, status.HTTP_409_CONFLICT),
    (AuthError, status.HTTP_401_UNAUTHORIZED),
    (BadRequest, status.HTTP_400_BAD_REQUEST),
    (RateLimited, status.HTTP_429_TOO_MANY_REQUESTS),
    (ServiceUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (TransportError, status.HTTP_502_BAD_GATEWAY),
]


def get_context(request: Request) -> ChatContext:
    """The ChatContext built at startup."""
    return request.app.state.context


def status_for(error: ChatDeskError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_payload(error: ChatDeskError) -> dict:
    return {"detail": str(error), "error": type(error).__name__}


async def chatdesk_error_handler(request: Request, exc: ChatDeskError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=code, content=error_payload(exc))
