"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from savings_tracker.config.settings import get_settings
from savings_tracker.config.logging_config import setup_logging
from savings_tracker.repositories.sqlalchemy.database import init_db
from savings_tracker.api.routers import assets_router, goals_router, periods_router
from savings_tracker.core.exceptions import AppError, NotFoundError, StateError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    setup_logging()
    init_db()
    yield


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Savings goal execution tracking",
    version=settings.app_version,
    lifespan=lifespan,
)

app.include_router(assets_router)
app.include_router(goals_router)
app.include_router(periods_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Global handler for application errors."""
    if isinstance(exc, NotFoundError):
        status_code = 404
    elif isinstance(exc, StateError):
        status_code = 409
    else:
        status_code = 400
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message},
    )


@app.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
