"""
Domain Schemas for Candidates, Jobs and Recruiting Artifacts.

This module defines the Pydantic models shared by the services and the API:

- Candidate / Job: the loosely-populated records the frontend works with
- CandidateSnapshot / JobSnapshot: normalized, minimal shapes handed to the
  scoring and drafting services so they never see partial data
- PipelineEventCreate / PipelineEventRecord: the pipeline event log
- FitResult, MatchScorecard, OutreachDraft, ParsedResume, SemanticSearchResult,
  NextActionSuggestion: service outputs
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CandidateType = Literal["internal", "past", "uploaded"]

# Recruiting phases:
# sourced/new -> long list -> screening -> scheduling -> interview -> offer -> hired | rejected
PipelineStage = Literal[
    "sourced",
    "new",
    "long_list",
    "screening",
    "scheduling",
    "interview",
    "offer",
    "hired",
    "rejected",
]

JobStatus = Literal["open", "closed", "on hold"]
ActorType = Literal["agent", "user", "system"]
FitMethod = Literal["ai", "heuristic"]
DraftMethod = Literal["deterministic", "ai"]
EvidenceStrength = Literal["strong", "medium", "weak"]
EvidenceSource = Literal[
    "profile.skills", "profile.role", "profile.summary", "profile.history", "inferred"
]
NextActionType = Literal[
    "add_pipeline", "request_screening", "schedule_interview", "move_rejected"
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ------------------------------
# Core records
# ------------------------------


class Candidate(BaseModel):
    """A candidate as stored by the frontend.

    Older records carry `experience` instead of `experience_years`; both are
    accepted and folded into `experience_years`.
    """

    id: str
    name: str
    type: Optional[CandidateType] = None
    role: str = ""
    skills: List[str] = []
    location: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    experience_years: Optional[float] = None
    summary: str = ""
    notes: str = ""
    pipeline_stage: Dict[str, str] = {}
    metadata: Dict[str, Any] = {}

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def fold_legacy_experience(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("experience_years") is None:
            legacy = data.get("experience")
            if isinstance(legacy, (int, float)):
                data = {**data, "experience_years": legacy}
        return data


class Job(BaseModel):
    """A requisition."""

    id: str
    title: str
    department: str = ""
    location: str = ""
    required_skills: List[str] = []
    description: str = ""
    status: JobStatus = "open"
    company_context: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


class CandidateSnapshot(BaseModel):
    id: str
    name: str
    type: CandidateType
    email: str
    location: str
    role: str
    experience_years: float
    skills: List[str]
    summary: str
    captured_at: datetime

    model_config = ConfigDict(frozen=True)


class JobSnapshot(BaseModel):
    id: str
    title: str
    department: str
    location: str
    required_skills: List[str]
    description: str
    status: JobStatus
    company_context: Optional[Dict[str, Any]] = None
    captured_at: datetime

    model_config = ConfigDict(frozen=True)


def to_candidate_snapshot(candidate: Candidate) -> CandidateSnapshot:
    """Freeze a candidate into the shape the services consume."""
    years = candidate.experience_years
    if years is None or years != years:  # None or NaN
        years = 0.0
    return CandidateSnapshot(
        id=str(candidate.id),
        name=candidate.name.strip() or "Unknown",
        type=candidate.type or "uploaded",
        email=(candidate.email or "").strip(),
        location=candidate.location.strip(),
        role=candidate.role.strip(),
        experience_years=max(0.0, float(years)),
        skills=[s.strip() for s in candidate.skills if s and s.strip()],
        summary=(candidate.summary or candidate.notes).strip(),
        captured_at=utc_now(),
    )


def to_job_snapshot(job: Job) -> JobSnapshot:
    return JobSnapshot(
        id=str(job.id),
        title=job.title.strip(),
        department=job.department.strip(),
        location=job.location.strip(),
        required_skills=[s.strip() for s in job.required_skills if s and s.strip()],
        description=job.description.strip(),
        status=job.status,
        company_context=job.company_context,
        captured_at=utc_now(),
    )


# ------------------------------
# Pipeline
# ------------------------------


class PipelineEventCreate(BaseModel):
    candidate_id: str = Field(min_length=1)
    candidate_name: Optional[str] = None
    job_id: str = Field(min_length=1)
    job_title: Optional[str] = None
    event_type: str = Field(min_length=1)
    actor_type: ActorType = "user"
    actor_id: Optional[str] = None
    from_stage: Optional[str] = None
    to_stage: Optional[str] = None
    summary: str = ""
    metadata: Dict[str, Any] = {}


class PipelineEventRecord(PipelineEventCreate):
    id: str
    created_at: datetime


class ScreeningOutcome(BaseModel):
    passed: bool
    notes: str = ""


class ScorecardRecord(BaseModel):
    overall_score: Optional[float] = None
    confidence: Optional[float] = None


class DecisionArtifact(BaseModel):
    id: str
    decision: str
    details: Dict[str, Any] = {}
    created_at: Optional[datetime] = None


class NextActionSuggestion(BaseModel):
    job: Job
    type: NextActionType
    label: str
    description: str


# ------------------------------
# Scoring
# ------------------------------


class FitResult(BaseModel):
    score: int = Field(ge=0, le=100)
    rationale: str
    confidence: float = Field(ge=0, le=1)
    method: FitMethod
    reasons: List[str] = []


class ScorecardEvidence(BaseModel):
    id: str
    title: str
    detail: str
    source: EvidenceSource
    strength: EvidenceStrength


class MatchSubscores(BaseModel):
    skill_fit: int
    seniority_fit: int
    domain_fit: int
    evidence_quality: int


class MatchScorecard(BaseModel):
    overall_score: int
    subscores: MatchSubscores
    matched_skills: List[str]
    missing_required_skills: List[str]
    expected_seniority: str
    inferred_seniority: str
    risks: List[str]
    evidence: List[ScorecardEvidence]


# ------------------------------
# Drafting and parsing
# ------------------------------


class OutreachDraft(BaseModel):
    subject: str
    body: str
    created_at: datetime
    method: DraftMethod


class ExperienceEntry(BaseModel):
    title: str = ""
    company: str = ""
    duration: str = ""
    description: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class EducationEntry(BaseModel):
    degree: str = ""
    institution: str = ""
    year: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class ParsedResume(BaseModel):
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: List[str] = []
    experience: List[ExperienceEntry] = []
    education: List[EducationEntry] = []
    summary: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("name", "summary", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("skills", mode="before")
    @classmethod
    def drop_empty_skills(cls, v: Any) -> List[str]:
        if not isinstance(v, list):
            return []
        return [str(s).strip() for s in v if s is not None and str(s).strip()]

    @field_validator("experience", "education", mode="before")
    @classmethod
    def coerce_entries(cls, v: Any) -> List[Any]:
        if not isinstance(v, list):
            return []
        return [entry for entry in v if isinstance(entry, dict)]


# ------------------------------
# Search
# ------------------------------


class SemanticSearchResult(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    type: CandidateType
    skills: List[str]
    similarity: float
    content: str
    metadata: Dict[str, Any] = {}
