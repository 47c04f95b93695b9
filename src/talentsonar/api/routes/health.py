"""Health Route."""

from fastapi import APIRouter

from talentsonar.services.degraded_mode import get_degraded_mode_service
from talentsonar.utils.llms import get_ai_service

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health() -> dict:
    """Service status, AI availability and recently degraded features."""
    degraded = get_degraded_mode_service()
    features = degraded.active_features()
    return {
        "status": "degraded" if features else "ok",
        "ai_available": get_ai_service().is_available(),
        "degraded_features": features,
        "recent_degradations": [
            event.model_dump(mode="json") for event in degraded.recent(limit=10)
        ],
    }
