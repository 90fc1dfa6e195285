"""Notification JSON API routes."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..auth.models import User
from ..database import get_db
from ..dependencies import get_current_user, get_gateway
from ..errors import ConflictError
from ..push.gateway import DeliveryGateway
from .schemas import NotificationCreateRequest, NotificationRecord, NotificationUpdateRequest
from .service import (
    create_notification,
    delete_notification,
    get_notification,
    list_notifications,
    update_notification,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _serialize(notification) -> dict:
    return NotificationRecord.model_validate(notification).model_dump(mode="json")


@router.get("")
def list_api(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return JSONResponse([_serialize(n) for n in list_notifications(db)])


@router.post("")
def create_api(
    payload: NotificationCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    gateway: DeliveryGateway = Depends(get_gateway),
):
    notification, push_error = create_notification(db, payload, gateway)
    db.commit()
    data = _serialize(notification)
    if push_error:
        data["push_error"] = f"Notification saved but push delivery failed: {push_error}"
        return JSONResponse(data, status_code=207)
    return JSONResponse(data, status_code=201)


@router.put("/{notification_id}")
def update_api(
    notification_id: str,
    payload: NotificationUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    notification = get_notification(db, notification_id)
    if not notification:
        return JSONResponse({"error": "Notification not found"}, status_code=404)
    try:
        update_notification(db, notification, payload)
    except ConflictError as e:
        return JSONResponse({"error": str(e)}, status_code=409)
    db.commit()
    return JSONResponse(_serialize(notification))


@router.delete("/{notification_id}")
def delete_api(
    notification_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not delete_notification(db, notification_id):
        return JSONResponse({"error": "Notification not found"}, status_code=404)
    db.commit()
    return JSONResponse({"ok": True})
