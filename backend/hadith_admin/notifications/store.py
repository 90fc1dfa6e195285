"""Notification collection store used by the job processor."""

from ..record_store import SqlRecordStore
from .models import Notification
from .schemas import NotificationRecord


class NotificationStore(SqlRecordStore[Notification, NotificationRecord]):
    model = Notification
    record = NotificationRecord
    name = "notifications"
