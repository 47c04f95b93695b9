"""
Request Schemas for API Payload Validation.

Pydantic models for the JSON bodies the API accepts. Domain records (Candidate,
Job, PipelineEventCreate) come from talentsonar.config.schemas; the models here
wrap them with the per-endpoint extras and constraints.

Key Models:
    - FitRequest / ScorecardRequest: job + candidate pair
    - OutreachRequest: pair plus optional evidence claim and role context
    - NextActionRequest: pipeline state for one candidate across jobs
    - ResumeParseRequest: raw resume text
    - IndexCandidateRequest / SemanticSearchRequest: candidate vector index
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from talentsonar.config.schemas import (
    Candidate,
    CandidateType,
    Job,
    PipelineEventRecord,
    ScorecardRecord,
    ScreeningOutcome,
    DecisionArtifact,
)

MAX_RESUME_CHARS = 100_000


class FitRequest(BaseModel):
    """Job/candidate pair to score.

    `semantic_score` (0-100) is optional; when omitted the API computes it
    from embeddings if AI is available.
    """

    job: Job
    candidate: Candidate
    semantic_score: Optional[float] = Field(default=None, ge=0, le=100)


class ScorecardRequest(BaseModel):
    job: Job
    candidate: Candidate


class OutreachRequest(BaseModel):
    job: Job
    candidate: Candidate
    evidence_claim: Optional[str] = Field(default=None, max_length=500)
    role_context: Optional[Dict[str, Any]] = None


class JobMatch(BaseModel):
    job: Job
    score: float = 0


class NextActionRequest(BaseModel):
    """Pipeline state for one candidate.

    When `pipeline_events` is omitted, events are read from the pipeline log.
    Screenings per job are ordered most recent first.
    """

    candidate_id: str = Field(min_length=1)
    pipeline_stage_by_job_id: Dict[str, Optional[str]] = {}
    job_matches: List[JobMatch] = []
    pipeline_events: Optional[List[PipelineEventRecord]] = None
    screenings_by_job: Dict[str, List[ScreeningOutcome]] = {}
    shortlist_by_job: Dict[str, List[DecisionArtifact]] = {}
    scorecards: Dict[str, ScorecardRecord] = {}


class ResumeParseRequest(BaseModel):
    text: str = Field(max_length=MAX_RESUME_CHARS)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Reject blank resume text."""
        if not v.strip():
            raise ValueError("text must contain resume content")
        return v


class IndexCandidateRequest(BaseModel):
    candidate: Candidate


class SemanticSearchRequest(BaseModel):
    query: str = Field(min_length=1, max_length=2000)
    threshold: float = Field(default=0.65, ge=0, le=1)
    limit: int = Field(default=10, ge=1, le=50)
    type: Optional[CandidateType] = None

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("query must not be blank")
        return v
