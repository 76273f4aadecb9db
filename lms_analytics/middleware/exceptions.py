import logging
import uuid
from datetime import datetime

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from lms_analytics.schemas.response import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)

def _get_error_code(status_code: int) -> str:
    code_map = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_SERVER_ERROR",
        503: "SERVICE_UNAVAILABLE",
    }
    return code_map.get(status_code, f"HTTP_{status_code}")

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())

def _error_response(request: Request, request_id: str, detail: ErrorDetail) -> dict:
    return ErrorResponse(
        error=detail,
        timestamp=datetime.utcnow().isoformat(),
        path=str(request.url),
        request_id=request_id,
    ).model_dump()

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = _request_id(request)
    detail = ErrorDetail(
        code="VALIDATION_ERROR",
        message="Request validation failed",
        details={"validation_errors": exc.errors()},
    )
    logger.warning(f"[{request_id}] Validation error: {exc.errors()}", extra={"request_id": request_id})
    return JSONResponse(status_code=422, content=_error_response(request, request_id, detail))

async def http_exception_handler(request: Request, exc: HTTPException):
    request_id = _request_id(request)
    detail = ErrorDetail(
        code=_get_error_code(exc.status_code),
        message=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
    )
    logger.warning(f"[{request_id}] HTTP {exc.status_code}: {exc.detail}", extra={"request_id": request_id})
    return JSONResponse(status_code=exc.status_code, content=_error_response(request, request_id, detail))

async def global_exception_handler(request: Request, exc: Exception):
    """Any failure that escapes a route, data-source errors included, becomes a 500.

    Dashboards get an explicit error instead of a snapshot of zeros.
    """
    request_id = _request_id(request)
    detail = ErrorDetail(
        code="INTERNAL_SERVER_ERROR",
        message="An unexpected error occurred",
        details={"error_type": type(exc).__name__},
    )
    logger.error(f"[{request_id}] Unhandled exception: {exc}", exc_info=True, extra={"request_id": request_id})
    return JSONResponse(status_code=500, content=_error_response(request, request_id, detail))
