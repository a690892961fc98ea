from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


class BadRequestError(ApiError):
    def __init__(self, message: str = "Bad Request", details: Any = None, *, code: str = "BAD_REQUEST"):
        super().__init__(400, code, message, details)


class UnauthorizedError(ApiError):
    def __init__(self, message: str = "Unauthorized", details: Any = None, *, code: str = "UNAUTHORIZED"):
        super().__init__(401, code, message, details)


class NotFoundError(ApiError):
    def __init__(self, message: str = "Not Found", details: Any = None, *, code: str = "NOT_FOUND"):
        super().__init__(404, code, message, details)


class ConflictError(ApiError):
    def __init__(self, message: str = "Conflict", details: Any = None, *, code: str = "CONFLICT"):
        super().__init__(409, code, message, details)


class InternalServerError(ApiError):
    def __init__(
        self,
        message: str = "Internal Server Error",
        details: Any = None,
        *,
        code: str = "INTERNAL_ERROR",
    ):
        super().__init__(500, code, message, details)


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "request_id": get_request_id(request),
    }
    if details is not None:
        error["details"] = details
    payload = {"success": False, "error": error}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def classify_integrity_error(exc: Exception) -> ApiError:
    # Best-effort mapping of storage constraint failures that services could not pre-check.
    text = str(getattr(exc, "orig", None) or exc).lower()
    if "duplicate key" in text or "unique constraint" in text or "duplicate entry" in text:
        return ConflictError(
            "Resource already exists",
            {"conflict": "duplicate key"},
            code="ALREADY_EXISTS",
        )
    if "foreign key" in text or "constraint fails" in text:
        return BadRequestError(
            "Invalid reference to related entity",
            {"issue": "foreign key violation"},
            code="INVALID_REFERENCE",
        )
    return BadRequestError("Validation error", code="CONSTRAINT_VIOLATION")
