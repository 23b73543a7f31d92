"""
app.py - FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires all services, registers routers, and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.allocation_controller import router as allocation_router
from backend.controllers.booking_controller import router as booking_router
from backend.controllers.comment_controller import router as comment_router
from backend.controllers.inventory_controller import router as inventory_router
from backend.controllers.live_link_controller import router as live_link_router
from backend.controllers.notification_controller import router as notification_router
from backend.controllers.report_controller import router as report_router
from backend.repository.data_repository import DataRepository
from backend.services.allocation_service import AllocationService
from backend.services.booking_service import BookingService
from backend.services.comment_service import CommentService
from backend.services.inventory_service import InventoryService
from backend.services.live_link_service import LiveLinkService
from backend.services.notification_service import NotificationService
from backend.services.report_service import ReportService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service shares one repository and is reachable through app.state,
    so tests can build an app against a throwaway database.
    """
    settings = settings or get_settings()

    repository = DataRepository(settings)

    notification_service = NotificationService(repository=repository, settings=settings)
    inventory_service = InventoryService(repository=repository, settings=settings)
    booking_service = BookingService(
        repository=repository,
        notification_service=notification_service,
        settings=settings,
    )
    allocation_service = AllocationService(repository=repository, settings=settings)
    report_service = ReportService(repository=repository, settings=settings)
    comment_service = CommentService(repository=repository, settings=settings)
    live_link_service = LiveLinkService(repository=repository, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(inventory_router)
    app.include_router(booking_router)
    app.include_router(allocation_router)
    app.include_router(report_router)
    app.include_router(notification_router)
    app.include_router(comment_router)
    app.include_router(live_link_router)

    app.state.repository = repository
    app.state.notification_service = notification_service
    app.state.inventory_service = inventory_service
    app.state.booking_service = booking_service
    app.state.allocation_service = allocation_service
    app.state.report_service = report_service
    app.state.comment_service = comment_service
    app.state.live_link_service = live_link_service

    return app


def _startup(app: FastAPI, settings: Settings) -> None:
    """Idempotent startup sequence. Safe to re-run on server restarts."""
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_inventory:
        logger.info("Startup: seeding demo inventory (skipped if buildings exist)")
        repository.seed_demo_inventory()

    logger.info("Startup complete | database=%s", repository.database_path)


# Module-level app object for uvicorn
app = create_app()
