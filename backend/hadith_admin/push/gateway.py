"""Push delivery gateway with Protocol pattern for dependency injection.

Provides FirebaseDeliveryGateway (FCM topic broadcast) and NullDeliveryGateway
(always fails, used when Firebase cannot be initialised).
"""

import json
import logging
from pathlib import Path
from typing import Protocol

import firebase_admin
from firebase_admin import credentials, messaging

from ..config import settings
from ..errors import DeliveryError

logger = logging.getLogger(__name__)


class DeliveryGateway(Protocol):
    """Broadcast a title/body pair to the app's topic. Raises DeliveryError on failure."""

    def send(self, title: str, body: str) -> str: ...


def _load_credentials() -> credentials.Base:
    """Service account from inline JSON, then from a file path, then Application Default Credentials."""
    if settings.firebase_service_account_json:
        try:
            return credentials.Certificate(json.loads(settings.firebase_service_account_json))
        except ValueError:
            logger.exception("Invalid FIREBASE_SERVICE_ACCOUNT_JSON, trying next credential source")

    if settings.firebase_service_account_path:
        path = Path(settings.firebase_service_account_path).resolve()
        try:
            return credentials.Certificate(str(path))
        except (OSError, ValueError):
            logger.exception("Cannot load Firebase service account file %s, trying next credential source", path)

    return credentials.ApplicationDefault()


def _get_app() -> firebase_admin.App:
    try:
        return firebase_admin.get_app()
    except ValueError:
        return firebase_admin.initialize_app(_load_credentials())


def build_message(title: str, body: str, topic: str) -> messaging.Message:
    return messaging.Message(
        topic=topic,
        notification=messaging.Notification(title=title, body=body),
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(sound="default", channel_id="default"),
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(aps=messaging.Aps(sound="default", badge=1)),
        ),
    )


class FirebaseDeliveryGateway:
    """Firebase Cloud Messaging topic broadcast."""

    def __init__(self, app: firebase_admin.App, topic: str = "all") -> None:
        self._app = app
        self._topic = topic

    def send(self, title: str, body: str) -> str:
        message = build_message(title, body, self._topic)
        try:
            message_id = messaging.send(message, app=self._app)
        except Exception as e:
            # FirebaseError, google-auth credential errors and transport errors alike
            raise DeliveryError(str(e) or type(e).__name__) from e
        logger.info("Notification sent to topic %r: %s", self._topic, message_id)
        return message_id


class NullDeliveryGateway:
    """Gateway used when push delivery is not configured: every send fails."""

    def __init__(self, reason: str = "push delivery not configured") -> None:
        self._reason = reason

    def send(self, title: str, body: str) -> str:
        raise DeliveryError(self._reason)


def create_delivery_gateway() -> DeliveryGateway:
    """Factory: create the Firebase gateway, or a failing gateway if Firebase can't start."""
    try:
        return FirebaseDeliveryGateway(_get_app(), topic=settings.fcm_topic)
    except Exception as e:
        logger.warning("Firebase initialisation failed, push delivery disabled: %s", e)
        return NullDeliveryGateway(f"push delivery not configured: {e}")
