from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.orm import Session
from sqlalchemy import text

from timebudget.db.base import get_db
from timebudget.core.config import settings
from timebudget.core.logger import setup_logger
from timebudget.routers import cron as cron_router
from timebudget.routers import snapshots as snapshots_router
from timebudget.routers import stats as stats_router
from timebudget.routers import export as export_router
from timebudget.core.errors import (
    TimeBudgetException,
    timebudget_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)


setup_logger(level=settings.LOG_LEVEL, log_file=settings.LOG_FILE or None)

app = FastAPI(
    title="TimeBudget API",
    description=(
        "**Weekly time-allocation accounting**\n\n"
        "Expands recurring calendar rules into concrete occurrences, splits each "
        "goal's weekly allocation into completed / scheduled / unscheduled time, "
        "and freezes finished weeks into immutable snapshots.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(TimeBudgetException, timebudget_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(cron_router.router)
app.include_router(snapshots_router.router)
app.include_router(stats_router.router)
app.include_router(export_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        logger.exception("Health check: database unreachable")
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
