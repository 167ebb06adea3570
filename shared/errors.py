"""
Error taxonomy shared by the services.

Handlers raise these instead of building responses by hand; the exception
handlers installed by register_error_handlers() turn them into JSON.
"""

import logging
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError


logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> dict:
        return {"detail": self.message}


class ValidationError(ApiError):
    """Malformed input. Carries one {field, message} entry per failed rule."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"

    def __init__(self, errors: List[dict] | str, field: Optional[str] = None):
        if isinstance(errors, str):
            errors = [{"field": field, "message": errors}]
        self.errors = errors
        super().__init__(errors[0]["message"] if errors else None)

    def to_body(self) -> dict:
        return {"errors": self.errors}


class UnauthorizedError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "User not authorized"


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class StoreError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server Error"


class UpstreamError(ApiError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service not available"


def _field_from_loc(loc) -> Optional[str]:
    # loc looks like ("body", "text") or ("body",) for a missing/broken body
    parts = [str(p) for p in loc if p != "body"]
    return ".".join(parts) or None


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": _field_from_loc(err.get("loc", ())), "message": err.get("msg", "Invalid value")}
        for err in exc.errors()
    ]
    return await api_error_handler(request, ValidationError(errors))


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    return await api_error_handler(request, StoreError())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
