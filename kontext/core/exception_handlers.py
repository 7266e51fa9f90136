"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Backend-facing failures
(ProxyError, BackendError, TransportError) leave as the
`{statusCode, statusMessage, data}` envelope; other domain errors use
KontextException.to_dict() with a status from the error-code table.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from kontext.core.config import get_settings
from kontext.domain.exceptions import BackendError, KontextException, ProxyError, TransportError

logger = logging.getLogger(__name__)

# Map domain error_code to HTTP status when applicable
_ERROR_CODE_STATUS: dict[str, int] = {
    "RESOURCE_NOT_FOUND": 404,
    "VALIDATION_ERROR": 400,
    "SCHEMA_VALIDATION_ERROR": 400,
    "TRANSPORT_ERROR": 502,
}


def _proxy_error_response(exc: ProxyError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _proxy_exception_handler(request: Request, exc: ProxyError) -> JSONResponse:
    """Return the envelope with the status the backend answered with."""
    return _proxy_error_response(exc)


def _backend_exception_handler(request: Request, exc: BackendError) -> JSONResponse:
    """Backend non-2xx raised outside the proxy; same envelope, same status."""
    return _proxy_error_response(exc.to_proxy_error())


def _transport_exception_handler(request: Request, exc: TransportError) -> JSONResponse:
    """Backend unreachable: 502 without the backend URL."""
    return _proxy_error_response(exc.to_proxy_error())


def _kontext_exception_handler(request: Request, exc: KontextException) -> JSONResponse:
    """Return JSON from KontextException.to_dict() with appropriate status code."""
    status = _ERROR_CODE_STATUS.get(exc.error_code, 400)
    return JSONResponse(status_code=status, content=exc.to_dict())


def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with validation error details."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": exc.errors(),
        },
    )


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return JSON for Starlette HTTP exceptions (status + detail)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP_ERROR", "message": exc.detail},
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception: %s", exc)
    settings = get_settings()
    detail: Any = str(exc) if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Call once after creating the app. The most specific registered class
    wins, so ProxyError/BackendError/TransportError take precedence over
    the KontextException fallback.
    """
    app.add_exception_handler(ProxyError, _proxy_exception_handler)
    app.add_exception_handler(BackendError, _backend_exception_handler)
    app.add_exception_handler(TransportError, _transport_exception_handler)
    app.add_exception_handler(KontextException, _kontext_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
