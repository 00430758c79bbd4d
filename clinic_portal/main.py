# clinic_portal/main.py
from __future__ import annotations

# Load .env early so settings and os.getenv see it
from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import DBAPIError

from clinic_portal.core.config import settings
from clinic_portal.core.errors import (
    BookingError,
    ErrorSeverity,
    StorageUnavailable,
    booking_error_handler,
    log_error,
    validation_error_handler,
)
from clinic_portal.core.logging import LoggingMiddleware, get_logger, setup_logging
from clinic_portal.db.session import Database, get_database

# Routers
from clinic_portal.api.routes.appointments import router as appointments_router
from clinic_portal.api.routes.payments import router as payments_router
from clinic_portal.api.routes.ratings import router as ratings_router
from clinic_portal.api.routes.schedule import router as schedule_router
from clinic_portal.api.routes.slots import router as slots_router

# Set up structured logging
setup_logging(
    debug=settings.is_development,
    max_log_length=settings.MAX_LOG_LENGTH,
    level=settings.LOG_LEVEL,
)
logger = get_logger(__name__)


def create_app(database: Optional[Database] = None, *, create_tables: Optional[bool] = None) -> FastAPI:
    """
    Build the API around one store handle. The handle is connected on startup,
    kept on app.state for the request dependencies, and disposed on shutdown.
    """
    database = database or Database(settings.async_db_uri)
    if create_tables is None:
        create_tables = settings.AUTO_CREATE_TABLES

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        await database.connect()
        if create_tables:
            await database.create_all()
            logger.info("tables_created")
        logger.info("application_started", env=settings.APP_ENV)
        yield
        # Shutdown
        await database.dispose()
        logger.info("application_stopped")

    app = FastAPI(
        title="Clinic Portal",
        description="Slot reservation and appointment lifecycle",
        lifespan=lifespan,
    )
    app.state.database = database

    app.middleware("http")(LoggingMiddleware(
        log_requests=settings.LOG_REQUESTS,
        log_responses=settings.LOG_RESPONSES,
        slow_threshold=settings.SLOW_REQUEST_THRESHOLD,
    ))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # -------- Health / readiness (public) --------
    @app.get("/healthz", include_in_schema=False)
    async def healthz():
        return {"ok": True}

    @app.get("/readyz", include_in_schema=False)
    async def readyz(request: Request):
        try:
            await get_database(request).ping()
        except DBAPIError as e:
            log_error(e, {"endpoint": "/readyz"}, ErrorSeverity.HIGH)
            raise StorageUnavailable("Database is not reachable") from e
        return {"db": "ok"}

    # -------- Include routers --------
    app.include_router(schedule_router)
    app.include_router(slots_router)
    app.include_router(appointments_router)
    app.include_router(ratings_router)
    app.include_router(payments_router)

    return app


app = create_app()
