"""Pipeline Event API Routes."""

from typing import List

from fastapi import APIRouter, Query, status

from talentsonar.config.schemas import PipelineEventCreate, PipelineEventRecord
from talentsonar.services.pipeline_events import get_pipeline_event_service
from talentsonar.utils.logger import set_correlation_id

router = APIRouter(prefix="/api/pipeline", tags=["pipeline"])


@router.post(
    "/events",
    status_code=status.HTTP_201_CREATED,
    response_model=PipelineEventRecord,
)
def log_pipeline_event(payload: PipelineEventCreate) -> PipelineEventRecord:
    set_correlation_id(candidate_id=payload.candidate_id, job_id=payload.job_id)
    return get_pipeline_event_service().log_event(payload)


@router.get("/events/{candidate_id}", response_model=List[PipelineEventRecord])
def list_pipeline_events(
    candidate_id: str, limit: int = Query(default=50, ge=1, le=200)
) -> List[PipelineEventRecord]:
    """Newest-first pipeline events for a candidate."""
    return get_pipeline_event_service().list_for_candidate(candidate_id, limit=limit)
