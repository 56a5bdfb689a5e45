"""
Cron batch schemas.

POST /cron/weekly-snapshots → CronBatchResponse
"""
from typing import Optional
from pydantic import BaseModel, Field


class BatchErrorOut(BaseModel):
    user_id: int
    email: Optional[str] = None
    error: str


class BatchResultsOut(BaseModel):
    total: int
    created: int
    skipped: int
    failed: int
    pending: int = Field(description="Users not started before the time budget ran out.")
    errors: list[BatchErrorOut]


class CronBatchResponse(BaseModel):
    success: bool
    week_start: str
    week_end: str
    results: BatchResultsOut


class CronStatusResponse(BaseModel):
    service: str
    status: str
    schedule: str
    endpoint: str
    auth: str
