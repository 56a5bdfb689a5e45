"""
Exception hierarchy and FastAPI handlers for TimeBudget.

Every error response is `{code, message, details?}`; `code` is stable and
meant for clients to branch on.

Engine-level errors (invalid rules, windows, events) are raised before any
computation starts and surface as 422s when they come from stored data.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette import status


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class TimeBudgetException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidRecurrenceRuleError(TimeBudgetException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_RECURRENCE_RULE"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            details={"field": field} if field else {},
        )


class InvalidWindowError(TimeBudgetException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_WINDOW"

    def __init__(self, start: datetime, end: datetime):
        super().__init__(
            message=f"Window end {end.isoformat()} is before window start {start.isoformat()}.",
            details={"start": start.isoformat(), "end": end.isoformat()},
        )


class InvalidEventError(TimeBudgetException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_EVENT"

    def __init__(self, message: str, event_id: Any = None):
        super().__init__(
            message=message,
            details={"event_id": event_id} if event_id is not None else {},
        )


class UserNotFoundError(TimeBudgetException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "USER_NOT_FOUND"

    def __init__(self, user_id: Any):
        super().__init__(
            message=f"User {user_id} not found.",
            details={"user_id": user_id},
        )


class GoalNotFoundError(TimeBudgetException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "GOAL_NOT_FOUND"

    def __init__(self, goal_id: Any):
        super().__init__(
            message=f"Goal {goal_id} not found.",
            details={"goal_id": goal_id},
        )


class SnapshotNotFoundError(TimeBudgetException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "SNAPSHOT_NOT_FOUND"

    def __init__(self, week_start: datetime):
        super().__init__(
            message=f"No snapshot for the week starting {week_start.date()}.",
            details={"week_start": week_start.isoformat()},
        )


class SnapshotAlreadyExistsError(TimeBudgetException):
    http_status = status.HTTP_409_CONFLICT
    code = "SNAPSHOT_ALREADY_EXISTS"

    def __init__(self, week_start: datetime, snapshot_id: int):
        super().__init__(
            message=f"A snapshot for the week starting {week_start.date()} already exists.",
            details={"week_start": week_start.isoformat(), "snapshot_id": snapshot_id},
        )


class SnapshotFrozenError(TimeBudgetException):
    http_status = status.HTTP_403_FORBIDDEN
    code = "SNAPSHOT_FROZEN"

    def __init__(self, snapshot_id: int):
        super().__init__(
            message="Cannot recalculate a manually frozen snapshot.",
            details={"snapshot_id": snapshot_id},
        )


class SnapshotNotRecalculableError(TimeBudgetException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "SNAPSHOT_NOT_RECALCULABLE"

    def __init__(self, week_offset: int):
        super().__init__(
            message="Only snapshots of past weeks can be recalculated.",
            details={"week_offset": week_offset},
        )


class CronNotConfiguredError(TimeBudgetException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "CRON_NOT_CONFIGURED"

    def __init__(self):
        super().__init__(message="CRON_SECRET is not configured on the server.")


class CronUnauthorizedError(TimeBudgetException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "CRON_UNAUTHORIZED"

    def __init__(self):
        super().__init__(message="Invalid or missing cron bearer token.")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def timebudget_exception_handler(request: Request, exc: TimeBudgetException) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """422 with one `{field, message, type}` entry per failing location."""
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"code": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
    )
