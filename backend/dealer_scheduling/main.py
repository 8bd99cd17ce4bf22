# backend/dealer_scheduling/main.py
"""
FastAPI application for the dealership scheduler.

Run with:
    uvicorn dealer_scheduling.main:app
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from . import __version__
from .core.config import is_running_tests, settings
from .database import init_db
from .errors import register_error_handlers
from .routes.v1 import admin_calendar as admin_calendar_v1
from .routes.v1 import availability as availability_v1
from .routes.v1 import bookings as bookings_v1
from .routes.v1 import health as health_v1
from .routes.v1 import prometheus as prometheus_v1
from .services.notification_service import shutdown_notification_dispatcher

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info("Dealer scheduling API starting up...")
    logger.info(
        f"Environment: {settings.environment}, timezone: {settings.business_timezone}, "
        f"initial booking status: {settings.initial_booking_status}"
    )
    if not is_running_tests():
        init_db()
    yield
    logger.info("Dealer scheduling API shutting down...")
    shutdown_notification_dispatcher()


def create_app() -> FastAPI:
    application = FastAPI(
        title="Dealer Scheduling API",
        description="Test drive and service appointment scheduling with capacity control",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=app_lifespan,
    )
    register_error_handlers(application)

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(availability_v1.router, prefix="/availability")
    api_v1.include_router(bookings_v1.router, prefix="/bookings")
    api_v1.include_router(admin_calendar_v1.router, prefix="/admin/calendar")
    api_v1.include_router(health_v1.router, prefix="/health")
    api_v1.include_router(prometheus_v1.router, prefix="/metrics")
    application.include_router(api_v1)
    return application


app = create_app()
