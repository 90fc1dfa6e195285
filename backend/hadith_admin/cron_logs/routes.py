"""Cron log JSON API routes."""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..auth.models import User
from ..database import get_db
from ..dependencies import get_current_user
from .schemas import CronLogEntry
from .service import clear_logs, count_by_status, list_logs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron-logs", tags=["cron-logs"])


@router.get("")
def list_api(
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    logs = list_logs(db, limit=limit)
    return JSONResponse(
        {
            "logs": [CronLogEntry.model_validate(log).model_dump(mode="json") for log in logs],
            "counts": count_by_status(db),
        }
    )


@router.delete("")
def clear_api(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    deleted = clear_logs(db)
    db.commit()
    logger.info("Cleared %d cron logs (by %s)", deleted, user.email)
    return JSONResponse({"ok": True, "deleted": deleted})
