"""
Exception handlers translating failures into the ErrorResponse envelope.

Domain errors map to a status code and type through ERROR_STATUS; anything
unexpected becomes a 500 without leaking internals.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Type

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from resource_registry.core.errors import (
    ConfigurationError,
    ResourceRegistryError,
    TargetUnavailableError,
)
from resource_registry.schemas.common import ErrorInfo, ErrorResponse

logger = logging.getLogger(__name__)

ERROR_STATUS: Dict[Type[ResourceRegistryError], Tuple[int, str]] = {
    ConfigurationError: (503, "configuration_error"),
    TargetUnavailableError: (503, "target_unavailable"),
}


def error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Optional[Any] = None,
) -> JSONResponse:
    envelope = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json"))


async def _on_http_error(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, str):
        return error_response(request, exc.status_code, "http_error", exc.detail)
    return error_response(request, exc.status_code, "http_error", "HTTP Error", exc.detail)


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        request, 422, "validation_error", "Request validation failed", jsonable_encoder(exc.errors())
    )


async def _on_registry_error(request: Request, exc: ResourceRegistryError) -> JSONResponse:
    status_code, error_type = ERROR_STATUS.get(type(exc), (500, "internal_error"))
    logger.error("%s while handling %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return error_response(request, status_code, error_type, str(exc))


async def _on_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error processing %s %s", request.method, request.url.path)
    return error_response(request, 500, "internal_error", "An unexpected error occurred")


# PUBLIC_INTERFACE
def register_error_handlers(app: FastAPI) -> None:
    """Install the envelope-producing exception handlers on an application."""
    app.add_exception_handler(HTTPException, _on_http_error)
    app.add_exception_handler(RequestValidationError, _on_validation_error)
    app.add_exception_handler(ResourceRegistryError, _on_registry_error)
    app.add_exception_handler(Exception, _on_unexpected_error)
