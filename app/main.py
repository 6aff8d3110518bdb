"""FastAPI application entry point."""

from __future__ import annotations

from fastapi import FastAPI

from app.config import get_settings
from app.infra.logging_config import LoggingConfig, get_logger
from app.routers import commands, internal, system

logger = get_logger()


def create_app(testing: bool = False) -> FastAPI:
    """
    Build the application.

    Outside of testing the plugin configuration is validated up front, so a
    missing OAuth client or encryption key fails at startup rather than on
    the first command.
    """
    settings = get_settings()
    LoggingConfig()
    if not testing and not settings.is_test:
        settings.validate_plugin()

    app = FastAPI(title="GitLab Bridge", version="0.1.0")
    app.include_router(system.router)
    app.include_router(commands.router)
    app.include_router(internal.router)

    logger.info("Application created (environment=%s)", settings.environment)
    return app


app = create_app(testing=get_settings().is_test)
