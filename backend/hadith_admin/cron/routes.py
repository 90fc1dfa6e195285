"""On-demand cron trigger endpoint."""

import hmac
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..auth.models import User
from ..config import settings
from ..dependencies import get_optional_user, get_processor
from ..errors import AuthorizationError
from .processor import JobProcessor
from .service import run_manual

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cron"])


def _matches_secret(candidate: str | None) -> bool:
    if not settings.cron_secret or not candidate:
        return False
    return hmac.compare_digest(candidate.encode(), settings.cron_secret.encode())


def authorize_trigger(request: Request, user: User | None = Depends(get_optional_user)) -> str:
    """Return who triggered the run, or raise AuthorizationError before any work begins."""
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer ") and _matches_secret(auth_header[len("Bearer "):]):
        return "bearer"
    if _matches_secret(request.query_params.get("secret")):
        return "secret"
    # Session cookies ride along on cross-site top-level GETs, so they only count for POST.
    if user is not None and request.method == "POST":
        return f"admin:{user.email}"
    if request.headers.get("x-internal-cron") == "true" and settings.is_development:
        return "internal"
    raise AuthorizationError("Cron trigger not authorized")


@router.api_route("/api/cron", methods=["GET", "POST"])
def trigger_cron(
    triggered_by: str = Depends(authorize_trigger),
    processor: JobProcessor = Depends(get_processor),
):
    try:
        result = run_manual(processor, triggered_by)
    except Exception as e:
        logger.exception("Manual cron run failed")
        return JSONResponse({"ok": False, "error": str(e)}, status_code=500)
    return JSONResponse(
        {
            "ok": True,
            **result.to_dict(),
            "timestamp": datetime.now(UTC).isoformat(),
        }
    )
