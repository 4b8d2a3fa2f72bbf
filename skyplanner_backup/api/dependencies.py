"""Dependency injection for FastAPI."""

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from skyplanner_backup.backup import BackupManager


async def get_backup_manager(request: Request) -> "BackupManager":
    """Get BackupManager instance from app state."""
    return request.app.state.backup_manager
