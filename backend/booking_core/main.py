# backend/booking_core/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.routing import APIRoute

from . import __version__
from .core.config import settings
from .database import init_db
from .errors import register_error_handlers
from .routes.v1 import (
    availability as availability_v1,
    booking_requests as booking_requests_v1,
    bookings as bookings_v1,
    health as health_v1,
    jobs as jobs_v1,
    session_edit_requests as session_edit_requests_v1,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{settings.app_name} starting up (environment={settings.environment})")
    init_db()
    yield
    logger.info(f"{settings.app_name} shutting down")


def _unique_operation_id(route: APIRoute) -> str:
    methods = "_".join(sorted(m.lower() for m in route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "").strip("_")
    name = (route.name or "operation").lower().replace(" ", "_")
    return f"{methods}__{path}__{name}".strip("_")


app = FastAPI(
    title="Booking Core API",
    description="Booking reservation and slot-conflict engine",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
    generate_unique_id_function=_unique_operation_id,
)

# Register unified error envelope handlers
register_error_handlers(app)

api_v1 = APIRouter(prefix=settings.api_prefix)
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(session_edit_requests_v1.router, prefix="/session-edit-requests")
api_v1.include_router(booking_requests_v1.router, prefix="/booking-requests")
api_v1.include_router(availability_v1.router, prefix="/availability")
api_v1.include_router(jobs_v1.router, prefix="/jobs")
api_v1.include_router(health_v1.router)

app.include_router(api_v1)
