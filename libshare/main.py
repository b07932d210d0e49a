"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from libshare.api.auth_routes import router as auth_router
from libshare.api.errors import register_exception_handlers
from libshare.api.middleware import install_middleware
from libshare.api.profile_routes import router as profile_router
from libshare.api.routes import router as books_router
from libshare.core.config import settings
from libshare.infrastructure.database.connection import init_db

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

Path(settings.storage_path).mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting LibShare application")
    await init_db()
    logger.info("Database initialized")
    yield
    logger.info("Shutting down LibShare application")


app = FastAPI(
    title="LibShare",
    description="Self-hosted book sharing",
    version="1.0.0",
    lifespan=lifespan,
)

install_middleware(app)
register_exception_handlers(app)

app.mount("/static", StaticFiles(directory=settings.storage_path), name="static")

app.include_router(auth_router)
app.include_router(books_router)
app.include_router(profile_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


def run() -> None:
    import uvicorn

    uvicorn.run("libshare.main:app", host="0.0.0.0", port=8080)
