"""
Analysis API Routes.

Routes for candidate/job fit scoring, the deterministic match scorecard and
the next-action suggestion.
"""

from fastapi import APIRouter

from talentsonar.config.request_schemas import (
    FitRequest,
    NextActionRequest,
    ScorecardRequest,
)
from talentsonar.config.schemas import MatchScorecard
from talentsonar.services.fit_analysis import (
    decision_from_score,
    external_id_for_job,
    get_fit_analysis_service,
)
from talentsonar.services.match_scorecard import compute_match_scorecard
from talentsonar.services.next_action import (
    JobMatchScore,
    NextActionContext,
    determine_next_action,
)
from talentsonar.services.pipeline_events import get_pipeline_event_service
from talentsonar.services.semantic_match import get_semantic_match_service
from talentsonar.utils.logger import get_logger, set_correlation_id

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/fit")
def analyze_fit(payload: FitRequest) -> dict:
    """Score candidate fit for a job.

    When `semantic_score` is not supplied it is computed from embeddings (if
    AI is available) and fed into both the AI prompt and the heuristic.

    Returns:
        FitResult fields plus:
            - semantic_score: the signal used (null when unavailable)
            - decision: STRONG_PASS | PASS | BORDERLINE | FAIL
            - external_id: stable shortlist id for the job
    """
    set_correlation_id(candidate_id=payload.candidate.id, job_id=payload.job.id)

    semantic_score = payload.semantic_score
    if semantic_score is None:
        semantic_score = get_semantic_match_service().score(payload.job, payload.candidate)

    result = get_fit_analysis_service().analyze(payload.job, payload.candidate, semantic_score)
    logger.info(
        "Fit analysis complete",
        extra={"extra_fields": {"score": result.score, "method": result.method}},
    )
    return {
        **result.model_dump(),
        "semantic_score": semantic_score,
        "decision": decision_from_score(result.score),
        "external_id": external_id_for_job(payload.job),
    }


@router.post("/scorecard", response_model=MatchScorecard)
def match_scorecard(payload: ScorecardRequest) -> MatchScorecard:
    return compute_match_scorecard(payload.candidate, payload.job)


@router.post("/next-action")
def next_action(payload: NextActionRequest) -> dict:
    """Suggest the next recruiter action for a candidate.

    Pipeline events are read from the pipeline log when the request omits them.
    """
    set_correlation_id(candidate_id=payload.candidate_id)

    events = payload.pipeline_events
    if events is None:
        events = get_pipeline_event_service().list_for_candidate(payload.candidate_id)

    context = NextActionContext(
        candidate_id=payload.candidate_id,
        job_matches=[JobMatchScore(m.job, m.score) for m in payload.job_matches],
        pipeline_events=events,
        pipeline_stage_by_job_id=payload.pipeline_stage_by_job_id,
        screenings_by_job=payload.screenings_by_job,
        shortlist_by_job=payload.shortlist_by_job,
        scorecards=payload.scorecards,
    )
    suggestion = determine_next_action(context)
    return {"suggestion": suggestion.model_dump(mode="json") if suggestion else None}
