"""Health check endpoints."""

from fastapi import APIRouter

from app.api.responses import ok
from app.core.config import get_settings

router = APIRouter()


@router.get("/health")
def health() -> dict[str, object]:
    """Simple liveness endpoint."""

    settings = get_settings()
    return ok({"status": "ok", "service": settings.app_name, "environment": settings.app_env})
