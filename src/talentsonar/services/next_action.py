"""
Next-Action Suggestion.

Given everything known about one candidate's pipeline (stages per job, pipeline
events, screenings, scorecards) this picks the single most useful thing a
recruiter should do next.

Jobs are walked from best to worst match score; the first job that triggers a
rule wins:

    1. screening failed                       -> move_rejected
    2. screening passed, not yet interviewing -> schedule_interview
    3. no screening, on the long list         -> request_screening
    4. no screening, overall score >= 75      -> request_screening
    5. not in the pipeline, or new/sourced    -> add_pipeline

If no job triggers a rule there is nothing to suggest.
"""

from datetime import datetime, timezone
from typing import List, Mapping, NamedTuple, Optional, Sequence

from talentsonar.config.schemas import (
    DecisionArtifact,
    Job,
    NextActionSuggestion,
    PipelineEventRecord,
    ScorecardRecord,
    ScreeningOutcome,
)
from talentsonar.utils.normalization import normalize_stage

STRONG_SCORE_THRESHOLD = 75


class JobMatchScore(NamedTuple):
    job: Job
    score: float


class NextActionContext(NamedTuple):
    candidate_id: str
    job_matches: Sequence[JobMatchScore]
    pipeline_events: Sequence[PipelineEventRecord] = ()
    pipeline_stage_by_job_id: Mapping[str, Optional[str]] = {}
    screenings_by_job: Mapping[str, List[ScreeningOutcome]] = {}
    shortlist_by_job: Mapping[str, List[DecisionArtifact]] = {}
    scorecards: Mapping[str, ScorecardRecord] = {}


def _as_utc(value: datetime) -> datetime:
    # Client-supplied timestamps may be naive
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def get_latest_event_for_job(
    events: Sequence[PipelineEventRecord], job_id: str
) -> Optional[PipelineEventRecord]:
    job_events = [e for e in events if e.job_id == job_id]
    if not job_events:
        return None
    return max(job_events, key=lambda e: _as_utc(e.created_at))


def infer_stage_from_event(event: Optional[PipelineEventRecord]) -> str:
    """Stage implied by a pipeline event; "new" when there is no event."""
    if event is None:
        return "new"
    stage = normalize_stage(event.to_stage or event.from_stage)
    if stage:
        return stage

    event_type = normalize_stage(event.event_type)
    if event_type in ("rejected", "hired"):
        return event_type
    return "new"


def _suggest(job: Job, action_type: str, label: str, description: str) -> NextActionSuggestion:
    return NextActionSuggestion(job=job, type=action_type, label=label, description=description)


def determine_next_action(context: NextActionContext) -> Optional[NextActionSuggestion]:
    # sorted() is stable, so equal scores keep their input order
    ranked = sorted(context.job_matches, key=lambda m: m.score, reverse=True)

    for job, score in ranked:
        latest_event = get_latest_event_for_job(context.pipeline_events, job.id)
        stage_from_candidate = normalize_stage(context.pipeline_stage_by_job_id.get(job.id))
        stage = stage_from_candidate or infer_stage_from_event(latest_event)
        has_pipeline_signal = bool(stage_from_candidate) or latest_event is not None

        screenings = context.screenings_by_job.get(job.id) or []
        screening = screenings[0] if screenings else None
        scorecard = context.scorecards.get(job.id)
        overall_score = (
            scorecard.overall_score
            if scorecard is not None and scorecard.overall_score is not None
            else score
        )

        if screening is not None and not screening.passed:
            return _suggest(
                job,
                "move_rejected",
                "Move to Rejected",
                "Screening failed. Log rejection and notify hiring team.",
            )

        if screening is not None and stage not in ("interview", "hired"):
            return _suggest(
                job,
                "schedule_interview",
                "Schedule Interview",
                "Screening passed; next step is to schedule the hiring manager interview.",
            )

        if screening is None and stage == "long_list":
            return _suggest(
                job,
                "request_screening",
                "Request Screening",
                "Candidate is on the Long List; time to capture screening data.",
            )

        if screening is None and overall_score >= STRONG_SCORE_THRESHOLD:
            return _suggest(
                job,
                "request_screening",
                "Request Screening",
                "Strong scorecard; let the Screening Agent handle the call.",
            )

        if not has_pipeline_signal or stage in ("new", "sourced"):
            return _suggest(
                job,
                "add_pipeline",
                "Add to Long List",
                "Bring this candidate into the pipeline to track progress.",
            )

    return None

