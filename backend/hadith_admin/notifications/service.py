"""Notification service: CRUD and immediate broadcast.

Scheduled and recurring notifications are delivered later by the job
processor; immediate ones are sent here, at creation time.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from ..errors import ConflictError, DeliveryError
from ..push.gateway import DeliveryGateway
from .models import Notification, NotificationType
from .schemas import NotificationCreateRequest, NotificationUpdateRequest

logger = logging.getLogger(__name__)


def _to_uuid(value: str) -> UUID | None:
    """Convert string to UUID, returning None on failure."""
    if not value:
        return None
    try:
        return UUID(value)
    except (ValueError, AttributeError):
        return None


def list_notifications(db: Session) -> list[Notification]:
    return db.query(Notification).order_by(Notification.created_at.desc()).all()


def get_notification(db: Session, notification_id: str) -> Notification | None:
    uid = _to_uuid(notification_id)
    if uid is None:
        return None
    return db.query(Notification).filter(Notification.id == uid).first()


def create_notification(
    db: Session,
    payload: NotificationCreateRequest,
    gateway: DeliveryGateway,
) -> tuple[Notification, str | None]:
    """Store a notification, broadcasting it first when it is immediate.

    Returns the notification and the push error message, if any. The record is
    kept even when the immediate broadcast fails.
    """
    notification = Notification(
        title=payload.title,
        body=payload.body,
        type=payload.type,
        active=payload.active,
    )
    if payload.type == NotificationType.SCHEDULED:
        notification.scheduled_date = payload.scheduled_date
        notification.scheduled_time = payload.scheduled_time.replace(second=0, microsecond=0)
    elif payload.type == NotificationType.RECURRING:
        notification.recurring_days = sorted(set(payload.recurring_days))
        notification.recurring_time = payload.recurring_time.replace(second=0, microsecond=0)

    push_error = None
    if payload.type == NotificationType.IMMEDIATE:
        try:
            gateway.send(payload.title, payload.body)
            logger.info("Immediate notification %r sent", payload.title)
        except DeliveryError as e:
            logger.error("Immediate notification %r failed: %s", payload.title, e)
            push_error = str(e)

    db.add(notification)
    db.flush()
    return notification, push_error


def is_delivered(notification: Notification) -> bool:
    """A scheduled notification that already went out. Only deletion is allowed after that."""
    return notification.type == NotificationType.SCHEDULED and notification.sent_at is not None


def update_notification(db: Session, notification: Notification, payload: NotificationUpdateRequest) -> Notification:
    if is_delivered(notification):
        raise ConflictError(f"Notification {notification.id} was already sent and can no longer be edited")
    changes = payload.model_dump(exclude_unset=True)
    for field in ("scheduled_time", "recurring_time"):
        if changes.get(field) is not None:
            changes[field] = changes[field].replace(second=0, microsecond=0)
    if changes.get("recurring_days") is not None:
        changes["recurring_days"] = sorted(set(changes["recurring_days"]))
    for field, value in changes.items():
        setattr(notification, field, value)
    db.flush()
    return notification


def delete_notification(db: Session, notification_id: str) -> bool:
    notification = get_notification(db, notification_id)
    if not notification:
        return False
    db.delete(notification)
    db.flush()
    return True
