# src/pi_canvas/main.py
"""Main entry point for the Pi Canvas application."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from pi_canvas.api.v1 import pi_router
from pi_canvas.core.settings import settings
from pi_canvas.db.session import SessionLocal
from pi_canvas.services.container import PiServices, build_services
from pi_canvas.services.render_worker import DailyRenderWorker

logger = logging.getLogger(__name__)


def _initial_render(services: PiServices) -> None:
    with SessionLocal() as db:
        services.render_service.safe_render_and_publish(db)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build services, render the first set if needed and run the daily worker."""
    services: PiServices | None = getattr(app.state, "services", None)
    if services is None:
        services = build_services(settings)
        app.state.services = services
    services.publisher.directory.mkdir(parents=True, exist_ok=True)

    if settings.render_on_startup and not services.publisher.has_published():
        logger.info("No published wallpapers found; rendering initial set")
        await asyncio.to_thread(_initial_render, services)

    worker: DailyRenderWorker | None = None
    if settings.daily_render_enabled:
        worker = DailyRenderWorker(
            services.render_service,
            SessionLocal,
            hour=settings.daily_render_hour_utc,
            minute=settings.daily_render_minute_utc,
        )
        await worker.start()
    app.state.render_worker = worker

    yield

    if worker:
        await worker.stop()


# Initialize FastAPI app
app = FastAPI(
    title="Pi Canvas API",
    description="Claim one digit of pi and watch the shared wallpaper grow",
    version=settings.app_version,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(pi_router, prefix="/api/v1")

# Published wallpapers; the directory is created on startup.
app.mount(
    "/" + settings.wallpaper_url_path.strip("/"),
    StaticFiles(directory=settings.wallpaper_dir, check_dir=False),
    name="wallpapers",
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("pi_canvas.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
