"""
Main FastAPI application entry point.
Responsibilities: App setup, router registration, startup/shutdown hooks.
"""
from typing import Optional

from fastapi import FastAPI

from .config import get_settings
from .container import Container, build_container
from .logging_config import configure_from_settings, logger
from .routes import chat, documents, models


def create_app(container: Optional[Container] = None) -> FastAPI:
    """
    Build the application.

    Args:
        container: Pre-built services; when omitted they are built from environment settings
    """
    if container is None:
        settings = get_settings()
        configure_from_settings(settings)
        container = build_container(settings)

    app = FastAPI(title="ragdesk", version="0.1.0")
    app.state.container = container

    # Register routers
    app.include_router(documents.router)
    app.include_router(chat.router)
    app.include_router(models.router)

    @app.on_event("startup")
    def startup_event():
        """Run migrations and warm up the embedding model."""
        logger.info("Application starting", storage_backend=container.settings.storage_backend)
        container.startup()
        logger.info("Application ready")

    @app.on_event("shutdown")
    def shutdown_event():
        """Drain background ingestion before exit."""
        logger.info("Application shutting down")
        container.shutdown()

    return app


app = create_app()
