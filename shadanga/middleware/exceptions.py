from typing import Any, Dict, Optional
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from shadanga.schemas.response import ErrorResponse, ErrorDetail
from shadanga.utils.clock import utcnow
import logging
import uuid

logger = logging.getLogger(__name__)

ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_SERVER_ERROR",
}

def _error_response(
    request: Request,
    status_code: int,
    message: str,
    code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    body = ErrorResponse(
        error=ErrorDetail(
            code=code or ERROR_CODES.get(status_code, f"HTTP_{status_code}"),
            message=message,
            details=details,
        ),
        timestamp=utcnow().isoformat(),
        path=request.url.path,
        request_id=request_id,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"{request.method} {request.url.path} rejected: {exc.errors()}")
    return _error_response(
        request,
        422,
        "Request validation failed",
        details={"validation_errors": jsonable_encoder(exc.errors())},
    )

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {message}")
    return _error_response(
        request, exc.status_code, message, headers=getattr(exc, "headers", None)
    )

async def global_exception_handler(request: Request, exc: Exception):
    if isinstance(exc, (HTTPException, StarletteHTTPException)):
        return await http_exception_handler(request, exc)

    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error_response(request, 500, "An unexpected error occurred")
