"""
Centralised error handling — exception hierarchy + FastAPI handlers.

Provides:
    • Domain-specific exception classes
    • Consistent JSON error response format
    • Automatic logging of unhandled errors

Usage:
    from backend.app.core.errors import (
        NotifierError,
        RecordValidationError,
        AccountStoreError,
        PushTransportError,
        register_error_handlers,
    )

    raise RecordValidationError("EmergencyRecord", errors=[...])

Note: notification rounds never let these escape to the trigger; the
round boundary in notifications.dispatcher converts them into a no-op
result. The HTTP handlers below cover the remaining API surface.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class NotifierError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class RecordValidationError(NotifierError):
    """A stored document did not match the expected record shape (422)."""

    def __init__(self, record_type: str, message: str = "", **details: Any):
        super().__init__(
            message=f"Invalid {record_type}: {message}",
            status_code=422,
            error_code="RECORD_VALIDATION_ERROR",
            details={"record_type": record_type, **details},
        )


class AccountStoreError(NotifierError):
    """Account store query failed (502)."""

    def __init__(self, operation: str, message: str = "", **details: Any):
        super().__init__(
            message=f"Account store '{operation}' failed: {message}",
            status_code=502,
            error_code="ACCOUNT_STORE_ERROR",
            details={"operation": operation, **details},
        )


class PushTransportError(NotifierError):
    """Push transport rejected or failed a single send (502)."""

    def __init__(self, token_prefix: str, message: str = "", **details: Any):
        super().__init__(
            message=f"Push to {token_prefix} failed: {message}",
            status_code=502,
            error_code="PUSH_TRANSPORT_ERROR",
            details={"token_prefix": token_prefix, **details},
        )


class BackendNotInitialisedError(NotifierError):
    """Backend handle used before initialise() (503)."""

    def __init__(self, message: str = "Backend handle is not initialised"):
        super().__init__(
            message=message,
            status_code=503,
            error_code="BACKEND_NOT_INITIALISED",
        )


# ═══════════════════════════════════════════════════════════════════════════
# Error Response Builder
# ═══════════════════════════════════════════════════════════════════════════

def _build_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: Dict[str, Any] = {
        "error": {
            "code": error_code,
            "message": message,
            "status": status_code,
        }
    }

    if details:
        body["error"]["details"] = details

    # Include request path in non-production
    if request and not settings.is_production:
        body["error"]["path"] = str(request.url.path)
        body["error"]["method"] = request.method

    return JSONResponse(status_code=status_code, content=body)


# ═══════════════════════════════════════════════════════════════════════════
# FastAPI Exception Handlers
# ═══════════════════════════════════════════════════════════════════════════

def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app."""

    @app.exception_handler(NotifierError)
    async def handle_notifier_error(request: Request, exc: NotifierError):
        logger.error(
            "API Error [%s]: %s | details=%s",
            exc.error_code, exc.message, exc.details,
        )
        return _build_error_response(
            exc.status_code, exc.error_code, exc.message,
            exc.details, request,
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.critical(
            "Unhandled exception: %s\n%s",
            exc, traceback.format_exc(),
        )
        message = str(exc) if settings.DEBUG else "Internal server error"
        return _build_error_response(
            500, "INTERNAL_ERROR", message, request=request,
        )
