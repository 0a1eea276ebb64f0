"""
FastAPI Application Entry Point.

Motor pool booking service: booking lifecycle, conflict checks, pool
resources and dashboard statistics.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from motorpool.app.core.config import settings
from motorpool.app.api.v1.router import router as api_v1_router
from motorpool.app.db.session import engine, Base
from motorpool.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from motorpool.app.core.observability import ObservabilityMiddleware, configure_logging
from motorpool.app.core.redis_client import ping_redis
from motorpool.app.services.notifications import get_notification_dispatcher

# Import models to ensure they are registered with Base
from motorpool.app.models.user import User
from motorpool.app.models.driver import Driver
from motorpool.app.models.vehicle import Vehicle
from motorpool.app.models.booking import Booking
from motorpool.app.models.booking_audit import BookingAuditEntry
from motorpool.app.models.audit_log import AuditLog
from motorpool.app.models.notification import Notification
from motorpool.app.models.dlq import NotificationDeadLetter
from motorpool.app.models.error_log import ErrorLogEntry

logger = logging.getLogger("motorpool")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.
    
    1. Configures logging.
    2. Creates database tables.
    3. Resolves the notification strategy once for the process.
    """
    configure_logging(settings.log_level)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    dispatcher = get_notification_dispatcher()
    logger.info("Notification strategy: %s", type(dispatcher.notifier).__name__)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Vehicle and driver booking with conflict-checked approvals",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    
    Redis only backs the statistics cache, so its absence degrades
    rather than fails the service.
    """
    redis_ok = await ping_redis()
    return {
        "status": "healthy" if redis_ok else "degraded",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if redis_ok else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.
    
    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to the Motor Pool Booking API",
        "docs": "/docs",
        "health": "/health",
    }
