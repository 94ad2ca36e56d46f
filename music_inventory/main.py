"""
Music Inventory - Main Application

FastAPI application that serves:
- HTML catalog pages via Jinja2 templates (songs, authors, categories)
- Static files (CSS)
- Song cover images stored in the database
- Health check endpoint

The store, renderer and handler objects are created once in
``create_app`` and shared by every request.
"""

import sys
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from music_inventory.config import (
    APP_ENV,
    APP_HOST,
    APP_PORT,
    APP_VERSION,
    DB_PATH,
    DEBUG,
    LOG_LEVEL,
    STATIC_DIR,
    UPLOAD_DIR,
    ensure_directories,
)
from music_inventory.database import init_db
from music_inventory.exceptions import CatalogError
from music_inventory.rendering import Renderer
from music_inventory.routes import build_routers
from music_inventory.store import CatalogStore

# ---------------------------------------------------------------------------
# Logging setup - stdout only
# ---------------------------------------------------------------------------
logger.remove()

logger.add(
    sys.stdout,
    level="DEBUG" if DEBUG else LOG_LEVEL,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    colorize=True,
)

_START_TIME = time.time()


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app(
    db_path: Optional[Path] = None,
    upload_dir: Optional[Path] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    db_path = Path(db_path or DB_PATH)
    upload_dir = Path(upload_dir or UPLOAD_DIR)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        On startup:
            1. Create the data and upload directories
            2. Initialize the SQLite database (creates tables)
        """
        logger.info("🚀 Starting Music Inventory v{}", APP_VERSION)
        logger.info("📋 Environment: {} | Debug: {}", APP_ENV, DEBUG)

        ensure_directories(db_path, upload_dir)
        logger.info("📁 Data directories initialized")

        try:
            init_db(db_path)
        except Exception as e:
            logger.critical("❌ Database initialization failed: {}", e)
            raise

        logger.success("✅ Application ready - listening on {}:{}", APP_HOST, APP_PORT)

        yield

        logger.info("👋 Shutdown complete")

    app = FastAPI(
        title="Music Inventory",
        description="Catalog of songs, authors and categories.",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if DEBUG else None,
        redoc_url="/redoc" if DEBUG else None,
    )

    store = CatalogStore(db_path)
    renderer = Renderer()

    # ------------------------------------------------------------------
    # Static files
    # ------------------------------------------------------------------
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    # ------------------------------------------------------------------
    # Error pages
    # ------------------------------------------------------------------
    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        """Render not-found and storage failures as the generic error page."""
        if exc.status_code >= 500:
            logger.error(
                "❌ {} {} - {}: {}",
                request.method,
                request.url.path,
                exc.message,
                exc.details,
            )
        context = {
            "page_title": "Error",
            "message": exc.message,
            "status_code": exc.status_code,
        }
        return renderer.render(
            request, "error.html", context, status_code=exc.status_code
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        context = {
            "page_title": "Error",
            "message": exc.detail,
            "status_code": exc.status_code,
        }
        return renderer.render(
            request, "error.html", context, status_code=exc.status_code
        )

    # ------------------------------------------------------------------
    # Request logging middleware
    # ------------------------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every incoming HTTP request with timing information."""
        start = time.time()
        try:
            response = await call_next(request)
        except Exception as exc:
            duration = round(time.time() - start, 3)
            logger.error(
                "❌ {method} {path} - unhandled error after {duration}s: {exc}",
                method=request.method,
                path=request.url.path,
                duration=duration,
                exc=exc,
            )
            raise

        duration = round(time.time() - start, 3)
        status = response.status_code
        if status >= 500:
            log = logger.error
        elif status >= 400:
            log = logger.warning
        elif request.url.path.startswith("/static"):
            return response
        else:
            log = logger.info
        log(
            "📤 {method} {path} - {status} [{duration}s]",
            method=request.method,
            path=request.url.path,
            status=status,
            duration=duration,
        )
        return response

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------
    @app.get("/health", tags=["API"])
    async def health_check():
        """Health check endpoint for the service."""
        db_ok = db_path.exists()
        return {
            "status": "ok" if db_ok else "degraded",
            "database": "ok" if db_ok else "missing",
            "uptime_seconds": round(time.time() - _START_TIME, 2),
            "version": APP_VERSION,
        }

    # ------------------------------------------------------------------
    # Register routers
    # ------------------------------------------------------------------
    for router in build_routers(store, renderer, upload_dir):
        app.include_router(router)

    return app


# ---------------------------------------------------------------------------
# Create the app instance (used by Uvicorn)
# ---------------------------------------------------------------------------
app = create_app()


# ---------------------------------------------------------------------------
# Direct execution (development)
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "music_inventory.main:app",
        host=APP_HOST,
        port=APP_PORT,
        reload=DEBUG,
        log_level="debug" if DEBUG else "info",
    )
