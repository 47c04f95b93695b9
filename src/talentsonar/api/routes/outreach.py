"""Outreach API Routes."""

from fastapi import APIRouter

from talentsonar.config.request_schemas import OutreachRequest
from talentsonar.config.schemas import OutreachDraft
from talentsonar.services.outreach import get_outreach_service
from talentsonar.utils.logger import set_correlation_id

router = APIRouter(prefix="/api", tags=["outreach"])


@router.post("/outreach", response_model=OutreachDraft)
def draft_outreach(payload: OutreachRequest) -> OutreachDraft:
    """Draft an outreach message (AI when available, template otherwise)."""
    set_correlation_id(candidate_id=payload.candidate.id, job_id=payload.job.id)
    return get_outreach_service().build(
        payload.job,
        payload.candidate,
        evidence_claim=payload.evidence_claim,
        role_context=payload.role_context,
    )
