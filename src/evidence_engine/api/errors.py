"""Map the exception taxonomy onto HTTP responses."""

from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse

from evidence_engine.exceptions import (
    CapacityError,
    EvidenceEngineError,
    InputError,
    QueueTimeoutError,
    ThrottlingError,
    UpstreamError,
)
from evidence_engine.observability.logger import get_logger

logger = get_logger("api_errors")


def status_for(exc: EvidenceEngineError) -> int:
    if isinstance(exc, InputError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, QueueTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(exc, CapacityError):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(exc, ThrottlingError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, UpstreamError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(exc: EvidenceEngineError) -> dict:
    return {"kind": exc.kind, "message": exc.message}


async def engine_error_handler(request: Request, exc: EvidenceEngineError) -> JSONResponse:
    code = status_for(exc)
    log = logger.warning if code < 500 else logger.error
    log("request_rejected", path=request.url.path, kind=exc.kind, status=code, error=exc.message)

    headers = {}
    retry_after = getattr(exc, "retry_after_seconds", None)
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    elif isinstance(exc, ThrottlingError):
        headers["Retry-After"] = "10"
    return JSONResponse(status_code=code, content=error_body(exc), headers=headers)
