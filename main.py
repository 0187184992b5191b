# main.py
from fastapi import FastAPI, HTTPException, Request
from datetime import datetime, timezone
from pydantic import BaseModel, Field
from dotenv import load_dotenv
from sqlalchemy.exc import IntegrityError
from common.config import initialize_config, get_config, is_configured, Environment
from common.logger import get_app_logger
from common.logger.logger_middleware import RequestLoggingMiddleware
from common.api_error import ConfigurationError, AppError, DatabaseError
from typing import Any, Optional
from pipeline_docs.db import DbManager
from pipeline_docs.api.v1 import v1_routers
from contextlib import asynccontextmanager
from fastapi.responses import JSONResponse

load_dotenv()
try:
    initialize_config()
except ConfigurationError as e:
    # Can't use logger yet, but that's OK - this is a fatal startup error
    print(f"FATAL: Configuration error:\n{e}")
    import sys

    sys.exit(1)

config = get_config()
logger = get_app_logger(
    name=__name__,
    track_timing=True,
    persist=True,
)

app_title = config.app_title
app_version = config.app_version


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A manager placed on app.state beforehand (tests, embedding) is used as is
    if getattr(app.state, "db_manager", None) is not None:
        yield
        return

    _db_config = config.database
    if not _db_config:
        raise RuntimeError("Database configuration required")

    logger.info("Database configured", **_db_config.to_dict_safe())

    db_manager = DbManager.from_config(_db_config)
    await db_manager.verify_connection()
    logger.info("Database manager ready", **db_manager.get_config_snapshot())

    # Ensure migrations are up-to-date (fail fast if not)
    try:
        await db_manager.verify_migrations_current()
        logger.info("✓ All migrations applied")
    except DatabaseError as e:
        logger.error(f"❌ Migration check failed: {e}")
        logger.error("Run 'alembic upgrade head'")
        raise

    # Add to state
    app.state.db_manager = db_manager

    yield
    logger.info("shutting down")
    await db_manager.dispose()


app = FastAPI(
    title=app_title,
    version=app_version,
    description=f"Running in {config.environment} environment",
    lifespan=lifespan,
)
app.add_middleware(
    RequestLoggingMiddleware,
    expose_performance_headers=config.environment.lower()
    != Environment.PRODUCTION.value.lower(),
    slow_query_threshold=(
        config.database.slow_query_threshold if config.database else 500.0
    ),
)

for router in v1_routers:
    app.include_router(router)


def _error_body(code: str, message: str, details: Optional[dict[str, Any]] = None) -> dict:
    body: dict[str, Any] = {
        "error": code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        body["details"] = details
    return body


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"Domain Error: {exc.code}",
        path=request.url.path,
        error_code=exc.code,
        message=exc.message,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.code, exc.message, exc.details),
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # Unique/foreign-key races that slipped past the service pre-checks
    logger.warning(
        "Constraint violation",
        path=request.url.path,
        error=str(exc.orig),
    )
    return JSONResponse(
        status_code=409,
        content=_error_body("CONSTRAINT_VIOLATION", "Request conflicts with existing data"),
    )


class HealthCheckResponse(BaseModel):
    status: str = Field(..., description="Current system health status")
    timestamp: datetime = Field(..., description="Server time in ISO 8601 format")
    version: str = Field(..., description="Application version")
    logging_configured: bool = Field(..., description="Logging configuration status")
    log_level: str = Field(..., description="Application log level")
    database: dict[str, Any] = Field(
        default_factory=dict, description="Database round-trip and pool status"
    )


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error message describing the failure")
    timestamp: datetime = Field(..., description="Server time when the error occurred")


@app.get(
    "/health",
    response_model=HealthCheckResponse,
    responses={
        200: {"description": "System is healthy", "model": HealthCheckResponse},
        503: {"description": "System is unhealthy", "model": ErrorResponse},
        500: {"description": "Unexpected server error", "model": ErrorResponse},
    },
)
async def check_health(request: Request) -> HealthCheckResponse:
    try:
        db_manager: Optional[DbManager] = getattr(request.app.state, "db_manager", None)
        database = await db_manager.health_check() if db_manager else {"healthy": False}

        if not app_version or not database.get("healthy"):
            logger.error(
                "Health check failed",
                endpoint="/health",
                app_title=app_title,
                database=database,
            )
            err = ErrorResponse(
                error="version not found" if not app_version else "database unavailable",
                timestamp=datetime.now(timezone.utc),
            )
            raise HTTPException(
                status_code=503,
                detail=err.model_dump(mode="json"),
            )

        logger.info("Health check passed", version=app_version, endpoint="/health")
        return HealthCheckResponse(
            status="Healthy",
            timestamp=datetime.now(timezone.utc),
            version=app_version,
            logging_configured=is_configured(),
            log_level=get_config().logging.level_value,
            database=database,
        )
    except HTTPException:
        raise
    except Exception as e:
        # exc_info=True will show full traceback with Rich formatting
        logger.critical("Unexpected error in health check", exc_info=True, error=str(e))
        err = ErrorResponse(
            error=f"Unexpected error: {str(e)}",
            timestamp=datetime.now(timezone.utc),
        )
        raise HTTPException(
            status_code=500,
            detail=err.model_dump(mode="json"),
        )


@app.get("/metrics")
async def metrics() -> dict[str, Any]:
    """Logging and persistence performance metrics."""
    from common.logger.persistence import get_persistence_metrics
    from common.logger.log_backends import get_all_metrics

    return {
        "logger": logger.get_timing_stats(),
        "persistence": get_persistence_metrics(),
        "backends": get_all_metrics(),
    }


__all__ = ["app", "config"]
