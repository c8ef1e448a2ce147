"""Exception types and the app-wide exception handlers.

Controllers raise `HTTPException(404)` for absent records; services raise
the `RegistryError` subclasses below. Every error, expected or not, is
rendered as an `ErrorOut` body. Unexpected exceptions are logged once,
with their traceback, by the request middleware in `main`; the caller
only ever sees a generic message.
"""

from datetime import datetime, timezone
from http import HTTPStatus
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .schemas import ErrorOut
from .validation import violations_from_errors


class RegistryError(Exception):
    """Base class for errors that map to a client-visible status."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(RegistryError):
    """One or more fields violated a constraint checked by a service."""
    status_code = 400

    def __init__(self, violations: Dict[str, str], message: str = "validation failed"):
        super().__init__(message)
        self.violations = dict(violations)


class InvalidQuery(RegistryError):
    """A sort or filter expression names an unknown field or operator."""
    status_code = 400


class RecordConflict(RegistryError):
    """A write would break a uniqueness rule."""
    status_code = 409


def _reason(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def error_response(
    request: Request,
    status_code: int,
    message: str,
    errors: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build a JSON `ErrorOut` response for `request`."""
    body = ErrorOut(
        timestamp=datetime.now(timezone.utc).isoformat(),
        status=status_code,
        error=_reason(status_code),
        message=message,
        path=request.url.path,
        request_id=getattr(request.state, "request_id", None),
        errors=errors,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


async def _request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response(request, 400, "validation failed", errors=violations_from_errors(exc.errors()))


async def _registry_error_handler(request: Request, exc: RegistryError):
    errors = exc.violations if isinstance(exc, ValidationFailed) else None
    return error_response(request, exc.status_code, exc.message, errors=errors)


async def _http_exception_handler(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) else _reason(exc.status_code)
    return error_response(request, exc.status_code, message, headers=getattr(exc, "headers", None))


async def _unhandled_exception_handler(request: Request, exc: Exception):
    return error_response(request, 500, "internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the handlers above to `app`."""
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(RegistryError, _registry_error_handler)
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
