"""Shared FastAPI dependencies."""

from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .auth.models import User
from .cron.processor import JobProcessor
from .database import get_db
from .push.gateway import DeliveryGateway


class AuthRequired(Exception):
    """Raised when the admin is not authenticated. Handled by exception handler in main.py."""

    pass


def get_gateway(request: Request) -> DeliveryGateway:
    """Get the push delivery gateway from app state."""
    return request.app.state.gateway


def get_processor(request: Request) -> JobProcessor:
    """Get the job processor from app state."""
    return request.app.state.processor


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> User | None:
    """Return the logged-in admin, or None. Clears stale sessions."""
    user_id_str = request.session.get("user_id")
    if not user_id_str:
        return None
    try:
        user_id = UUID(user_id_str)
    except (ValueError, AttributeError):
        request.session.clear()
        return None
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        request.session.clear()
        return None
    return user


def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    """Get the authenticated admin from session, or answer 401."""
    if user is None:
        raise AuthRequired()
    return user
