"""FastAPI application entry point."""

import asyncio
import logging
import sys
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware

from shopledger.api.routes import api_router
from shopledger.core.config import settings
from shopledger.core.exceptions import (
    ConflictError,
    LedgerError,
    NotFoundError,
    PersistenceError,
    StockError,
    ValidationError,
)
from shopledger.core.rate_limit import limiter
from shopledger.db.base import Base
from shopledger.db.session import SessionLocal, engine
from shopledger.services.scheduler_service import OVERDUE_SWEEP_TASK, run_overdue_sweep, scheduler

APP_VERSION = "1.0.0"

# Configure logging - use JSON format in production, human-readable in dev
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    import json as _json

    class JSONFormatter(logging.Formatter):
        def format(self, record):
            return _json.dumps({
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            })

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging all HTTP requests and responses."""

    async def dispatch(self, request: Request, call_next):
        # Skip logging for health checks and docs
        if request.url.path in ["/health", "/", "/docs", "/openapi.json"]:
            return await call_next(request)

        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
            process_time = time.time() - start_time

            log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
            request_logger.log(
                log_level,
                f"{request.method} {request.url.path} - "
                f"Status: {response.status_code} - Time: {process_time:.3f}s - Client: {client_ip}"
            )
            return response
        except Exception as e:
            process_time = time.time() - start_time
            request_logger.error(
                f"Error: {request.method} {request.url.path} - "
                f"Exception: {str(e)} - Time: {process_time:.3f}s - Client: {client_ip}"
            )
            raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting procurement and payables ledger")

    # Create tables if they don't exist (for SQLite dev)
    # In production with PostgreSQL, use Alembic migrations
    if settings.database_url.startswith("sqlite"):
        db_path = settings.database_url.replace("sqlite:///", "", 1)
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (SQLite mode)")

    scheduler_task = None
    if settings.overdue_sweep_enabled:
        scheduler.add_task(
            OVERDUE_SWEEP_TASK, run_overdue_sweep, settings.overdue_sweep_interval_seconds
        )
        scheduler_task = scheduler.start_background()

    yield

    if scheduler_task:
        scheduler.stop()
        try:
            await scheduler_task
        except asyncio.CancelledError:
            pass
        scheduler.remove_task(OVERDUE_SWEEP_TASK)

    logger.info("Shutting down procurement and payables ledger")


app = FastAPI(
    title="Procurement & Payables Ledger",
    description="Purchase orders, receiving, quality control and accounts payable",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def _ledger_error_response(request: Request, exc: LedgerError) -> JSONResponse:
    if isinstance(exc, PersistenceError):
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


for _error_class in (ValidationError, NotFoundError, ConflictError, StockError, PersistenceError, LedgerError):
    app.add_exception_handler(_error_class, _ledger_error_response)

# Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - added last so it runs first (Starlette LIFO order)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,  # Cache preflight for 10 minutes
)

# Include API routes
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": APP_VERSION}


@app.get("/health/ready")
def readiness_check():
    """Readiness probe with a database round trip."""
    db = None
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        database = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        database = "unhealthy"
    finally:
        if db:
            db.close()
    return {
        "status": "ready" if database == "healthy" else "degraded",
        "version": APP_VERSION,
        "checks": {"database": database, "scheduler": "running" if scheduler.running else "stopped"},
    }
