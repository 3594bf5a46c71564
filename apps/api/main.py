"""FastAPI application entrypoint for the seating engine."""

import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.logging import setup_logging
from core.utils_datetime import format_time_slot
from db.session import close_db, init_db
from domain.models import ConflictResponse
from services.errors import (
    BookingConflictError,
    InvalidTargetError,
    InvalidTransitionError,
    NotFoundError,
    SeatingError,
    StorageError,
)
from services.registry import Services, get_services
from apps.api import deps
from apps.api.routers import bookings, dashboard, events, floors, notifications, tables, waiting_list


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    setup_logging()
    logger.info(f"Starting {settings.app_name}...")

    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    services = get_services()
    if settings.scheduler_enabled:
        services.start_tasks()
        logger.info("Background loops started")

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    await services.stop_tasks()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Restaurant seating and reservation consistency engine",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"message": str(exc)})


@app.exception_handler(BookingConflictError)
async def booking_conflict_handler(request: Request, exc: BookingConflictError):
    body = ConflictResponse(
        message=str(exc),
        has_conflict=True,
        conflict=exc.conflict,
        suggested_time=exc.suggested_time,
        suggested_time_slot=format_time_slot(exc.suggested_time),
    )
    return JSONResponse(status_code=409, content=body.model_dump(mode="json"))


@app.exception_handler(InvalidTargetError)
async def invalid_target_handler(request: Request, exc: InvalidTargetError):
    return JSONResponse(status_code=400, content={"message": str(exc)})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(status_code=409, content={"message": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"message": "Internal storage error"})


@app.exception_handler(SeatingError)
async def seating_error_handler(request: Request, exc: SeatingError):
    logger.error(f"Unhandled engine error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"message": str(exc)})


# Include routers
app.include_router(floors.router, prefix=settings.api_prefix)
app.include_router(tables.router, prefix=settings.api_prefix)
app.include_router(bookings.router, prefix=settings.api_prefix)
app.include_router(notifications.router, prefix=settings.api_prefix)
app.include_router(waiting_list.router, prefix=settings.api_prefix)
app.include_router(dashboard.router, prefix=settings.api_prefix)
app.include_router(events.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "status": "running",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check(services: Services = Depends(deps.get_services)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "environment": settings.app_env,
        "scheduler": [
            {"name": task.name, "running": task.running}
            for task in services.tasks
        ],
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "apps.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
