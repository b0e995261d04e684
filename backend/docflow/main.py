"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from docflow.api.v1 import documents
from docflow.core.config import settings
from docflow.core.logging import get_logger, setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging("DEBUG" if settings.APP_ENV == "development" else "INFO")
    logger = get_logger("startup")
    logger.info("Application starting", app=settings.APP_NAME, env=settings.APP_ENV)
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Enrollment document generation and e-signature dispatch",
    version="0.1.0",
    lifespan=lifespan,
)

API_PREFIX = "/api/v1"
app.include_router(documents.router, prefix=API_PREFIX)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Public health-check endpoint."""
    return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}
