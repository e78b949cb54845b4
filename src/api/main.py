import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import SQLiteSubscriptionStore
from src.api.deps import get_settings
from src.api.routes import subscriptions
from src.app_shell.logging_setup import configure_logging
from src.configuration.models import Settings
from src.shell.http.health import create_health_router
from src.shell.http.request_id import RequestIdMiddleware

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Explicit settings; loaded from configuration/ when None
    """

    def resolve_settings() -> Settings:
        return settings if settings is not None else get_settings()

    def ping_database() -> None:
        current = resolve_settings()
        SQLiteSubscriptionStore(
            current.database.path,
            busy_timeout_seconds=current.database.busy_timeout_seconds,
        ).ping()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Configure logging and apply migrations on startup (fail-fast)."""
        current = resolve_settings()
        configure_logging(current.logging.level)
        SQLiteMigrator(current.database.path).run_migrations()
        logger.info("Database ready at %s", current.database.path)
        yield

    app = FastAPI(
        title="Newsletter Subscriptions API",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    if settings is not None:
        app.dependency_overrides[get_settings] = resolve_settings

    app.include_router(create_health_router(ping_database))
    app.include_router(subscriptions.router, tags=["Subscriptions"])
    app.add_middleware(RequestIdMiddleware)

    return app


app = create_app()
