"""
Custom exception hierarchy for MonitorWatch.

Rule: every error has a machine-readable `code` string so clients can
branch on it without parsing English messages, and a `reason` string
threaded through from the event that triggered the failing work
("Scheduled (Every hour)", "System sleep", "Voice Command (...)").

"No underlying data" is not an error: the note pipeline reports it as a
no-op result instead of raising.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class MonitorWatchError(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        reason: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        self.reason = reason
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        details = dict(self.details)
        if self.reason:
            details["reason"] = self.reason
        if details:
            payload["details"] = details
        return payload


class InvalidTimestampError(MonitorWatchError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_TIMESTAMP"

    def __init__(self, value: str, problem: str = "not an ISO-8601 timestamp"):
        super().__init__(
            message=f"Invalid timestamp {value!r}: {problem}.",
            details={"timestamp": value},
        )


class InvalidTimeRangeError(MonitorWatchError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_TIME_RANGE"

    def __init__(self, start: datetime, end: datetime, problem: str):
        super().__init__(
            message=f"Invalid time range: {problem}.",
            details={"start": start.isoformat(), "end": end.isoformat()},
        )


class InvalidDateError(MonitorWatchError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_DATE"

    def __init__(self, value: str):
        super().__init__(
            message=f"Invalid date {value!r}: expected YYYY-MM-DD.",
            details={"date": value},
        )


class AINotConfiguredError(MonitorWatchError):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "AI_NOT_CONFIGURED"

    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            message="OpenRouter API key not configured. Set OPENROUTER_API_KEY.",
            reason=reason,
        )


class SummarizationError(MonitorWatchError):
    """The upstream AI call failed. Never retried automatically."""
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "SUMMARIZATION_FAILED"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(
            message=message,
            details={"upstream_status": status_code} if status_code else {},
            reason=reason,
        )
        self.status_code = status_code


class UnauthorizedError(MonitorWatchError):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self):
        super().__init__(message="Missing or invalid API key.")


class NoteNotFoundError(MonitorWatchError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOTE_NOT_FOUND"

    def __init__(self, day: str):
        super().__init__(
            message=f"No notes found for {day}.",
            details={"date": day},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def monitorwatch_exception_handler(request: Request, exc: MonitorWatchError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
