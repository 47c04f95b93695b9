"""
Configuration Module for Talent Sonar.

Re-exports the domain models and request schemas so callers can write
`from talentsonar.config import Candidate, Job`. The focused modules are:

- settings.py: environment-driven constants
- schemas.py: domain records and service outputs
- request_schemas.py: API request bodies
- prompts.py: LLM system prompts and output specs
"""

from talentsonar.config.schemas import (
    Candidate,
    Job,
    CandidateSnapshot,
    JobSnapshot,
    to_candidate_snapshot,
    to_job_snapshot,
    PipelineEventCreate,
    PipelineEventRecord,
    FitResult,
    MatchScorecard,
    OutreachDraft,
    ParsedResume,
    SemanticSearchResult,
    NextActionSuggestion,
)

from talentsonar.config.request_schemas import (
    FitRequest,
    ScorecardRequest,
    OutreachRequest,
    NextActionRequest,
    ResumeParseRequest,
    IndexCandidateRequest,
    SemanticSearchRequest,
)

__all__ = [
    # Domain schemas
    "Candidate",
    "Job",
    "CandidateSnapshot",
    "JobSnapshot",
    "to_candidate_snapshot",
    "to_job_snapshot",
    "PipelineEventCreate",
    "PipelineEventRecord",
    "FitResult",
    "MatchScorecard",
    "OutreachDraft",
    "ParsedResume",
    "SemanticSearchResult",
    "NextActionSuggestion",
    # Request schemas
    "FitRequest",
    "ScorecardRequest",
    "OutreachRequest",
    "NextActionRequest",
    "ResumeParseRequest",
    "IndexCandidateRequest",
    "SemanticSearchRequest",
]
