"""
FastAPI application entrypoint for the solicitation brief pipeline.
"""

from __future__ import annotations

from fastapi import FastAPI

from briefing.api.routes import router as api_router
from briefing.core.config import get_settings
from briefing.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Solicitation Brief Pipeline",
        version="0.1.0",
        description="Dispatch and inspect per-section brief computations.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
