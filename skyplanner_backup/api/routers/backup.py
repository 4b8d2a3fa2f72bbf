"""Scheduled backup trigger and backup listing endpoints."""

import hmac
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from ..config import settings
from ..dependencies import get_backup_manager
from skyplanner_backup.backup import BackupManager
from skyplanner_backup.backup.models import BackupListing, BackupReport
from skyplanner_backup.exceptions import BackupError, BackupInProgressError
from skyplanner_backup._utils import logger

router = APIRouter(tags=["backup"])


def verify_cron_secret(x_cron_secret: Optional[str] = Header(None)) -> None:
    if not settings.cron_secret:
        raise HTTPException(status_code=500, detail="CRON_SECRET not configured")
    if not x_cron_secret or not hmac.compare_digest(x_cron_secret.encode(), settings.cron_secret.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/cron/backup", response_model=BackupReport, dependencies=[Depends(verify_cron_secret)])
async def run_backup(
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> BackupReport:
    """Run one backup synchronously and return its report."""
    try:
        report = await backup_manager.create_backup()
    except BackupInProgressError as e:
        logger.warning(f"Scheduled backup skipped: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    except BackupError as e:
        logger.error(f"Scheduled backup failed during {e.stage}: {e}")
        raise HTTPException(status_code=500, detail=f"Backup failed during {e.stage}: {e}")

    if report.missing_critical_tables or report.table_errors:
        logger.warning(f"Scheduled backup {report.filename} is partial: {report.errors}")
    return report


@router.get("/backups", response_model=List[BackupListing], dependencies=[Depends(verify_cron_secret)])
async def list_backups(
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> List[BackupListing]:
    """List all backup blobs."""
    return await backup_manager.list_backups()
