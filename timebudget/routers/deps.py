"""
Shared router dependencies.

Identity comes from the X-User-Id header set by the authenticating proxy;
the clock is a dependency so tests can pin `now`.
"""
from datetime import datetime

from fastapi import Header

from timebudget.core.config import settings
from timebudget.services.week_window import resolve_now


def current_user_id(
    x_user_id: int = Header(..., alias="X-User-Id", description="Authenticated user id."),
) -> int:
    return x_user_id


def get_now() -> datetime:
    return resolve_now(settings.REFERENCE_TIMEZONE)
