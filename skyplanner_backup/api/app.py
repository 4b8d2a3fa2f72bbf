"""FastAPI application exposing the scheduled backup trigger."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .routers import backup
from skyplanner_backup.backup import BackupManager
from skyplanner_backup.config import BackupSettings
from skyplanner_backup._utils import configure_logging, logger

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the backup manager once; configuration errors stop startup."""
    app.state.backup_manager = BackupManager.from_settings(BackupSettings.from_env())
    logger.info("Backup manager initialized")

    yield

    logger.info("Shutting down backup API...")
    await app.state.backup_manager.source.close()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.include_router(backup.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.api_title,
            "version": settings.api_version,
        }

    return app


app = create_app()
