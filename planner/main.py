"""Planner web application."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from planner.core.config import settings
from planner.core.database import create_db_and_tables
from planner.core.scheduler import shutdown_scheduler, start_scheduler
from planner.recurrence.errors import (
    ConcurrentMutationConflict,
    EventValidationError,
    NotFoundError,
)
from planner.routes import audit, events, guests, holidays

# Configure logging
log_dir = Path.home() / ".logs" / "planner"
log_dir.mkdir(parents=True, exist_ok=True)
log_file = log_dir / "latest.log"

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=str(log_file),
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    # Startup
    logger.info("Starting Planner application")
    create_db_and_tables()
    start_scheduler()
    yield
    # Shutdown
    shutdown_scheduler()
    logger.info("Planner application shut down")


app = FastAPI(
    title=settings.app_name,
    description="Calendar events with recurring series, scoped edits and reminders",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for external access
origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(events.router)
app.include_router(guests.router)
app.include_router(holidays.router)
app.include_router(audit.router)


@app.exception_handler(EventValidationError)
async def validation_handler(request: Request, exc: EventValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConcurrentMutationConflict)
async def conflict_handler(request: Request, exc: ConcurrentMutationConflict):
    return JSONResponse(status_code=409, content={"detail": str(exc), "retryable": True})


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}
