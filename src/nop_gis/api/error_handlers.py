from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from nop_gis.geometry import InvalidRingError
from nop_gis.logging import get_logger

logger = get_logger(__name__)


def _build_error_payload(
    *,
    message: str,
    request: Request,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "success": False,
        "message": message,
        "details": details,
        "request_id": getattr(request.state, "request_id", None),
    }


def _error_response(*, status_code: int, payload: dict[str, Any], request: Request) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content=payload)
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        response.headers["x-request-id"] = request_id
    return response


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        message = str(exc.detail.get("reason") or "Request failed.")
        details: dict[str, Any] | None = exc.detail
    else:
        message = str(exc.detail)
        details = None
    return _error_response(
        status_code=exc.status_code,
        payload=_build_error_payload(message=message, request=request, details=details),
        request=request,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    return _error_response(
        status_code=400,
        payload=_build_error_payload(
            message="Invalid request payload or query parameters.",
            request=request,
            details={"errors": jsonable_encoder(exc.errors())},
        ),
        request=request,
    )


async def invalid_ring_handler(request: Request, exc: InvalidRingError) -> JSONResponse:
    return _error_response(
        status_code=400,
        payload=_build_error_payload(message=str(exc), request=request),
        request=request,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=exc)
    return _error_response(
        status_code=500,
        payload=_build_error_payload(
            message=str(exc) or "Unexpected server error.",
            request=request,
        ),
        request=request,
    )
