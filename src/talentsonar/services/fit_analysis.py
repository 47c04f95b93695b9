"""
Fit Analysis: AI Scoring with a Heuristic Fallback.

Scores how well a candidate fits a job on a 0-100 scale.

Flow:
    1. Always compute the heuristic fit (skills overlap, semantic signal,
       years of experience). It is the answer whenever AI cannot be trusted.
    2. If AI is available, build a secure prompt (sanitized, delimited job and
       candidate blocks) and ask for a JSON score.
    3. Validate the response (clamp, leakage and injection checks). Any
       provider error or critical validation issue falls back to step 1 and is
       reported to degraded mode.

The service also derives the shortlist decision for a score and a stable
external id for a job (so repeated shortlisting of an unchanged job is
idempotent).
"""

import json
import math
from typing import Optional

from talentsonar.config.prompts import FIT_OUTPUT_SPEC, FIT_SYSTEM_PROMPT
from talentsonar.config.schemas import Candidate, FitResult, Job
from talentsonar.services.degraded_mode import DegradedModeService, get_degraded_mode_service
from talentsonar.utils.exceptions import AppError, UpstreamError
from talentsonar.utils.llms import AIService, get_ai_service
from talentsonar.utils.logger import get_logger, log_performance
from talentsonar.utils.output_validation import validate_fit_score
from talentsonar.utils.prompt_security import (
    build_secure_prompt,
    sanitize_for_prompt,
    sanitize_list,
    sanitize_short,
)

logger = get_logger(__name__)

HEURISTIC_CONFIDENCE = 0.45
DEFAULT_AI_CONFIDENCE = 0.7

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619


def _clamp(n: float, low: float, high: float) -> float:
    return max(low, min(high, n))


def compute_heuristic_fit(
    job: Job, candidate: Candidate, semantic_score: Optional[float] = None
) -> FitResult:
    """Rule-based fit score.

    score = 70 * matched/required skills
          + 0.25 * semantic score (0-100)
          + 2 per year of experience (max 10)
    """
    if semantic_score is not None and not math.isfinite(semantic_score):
        semantic_score = None
    years = candidate.experience_years
    if years is not None and not math.isfinite(years):
        years = None

    job_skills = [s.strip().lower() for s in job.required_skills if s and s.strip()]
    candidate_skills = {s.strip().lower() for s in candidate.skills if s and s.strip()}
    matched = [s for s in job_skills if s in candidate_skills]

    skill_score = len(matched) / len(job_skills) * 70 if job_skills else 0
    semantic_boost = _clamp(semantic_score, 0, 100) * 0.25 if semantic_score is not None else 0
    exp_boost = _clamp(years * 2, 0, 10) if years is not None else 0

    score = int(_clamp(round(skill_score + semantic_boost + exp_boost), 0, 100))

    reasons = []
    if matched:
        reasons.append(f"Matched skills: {', '.join(matched[:6])}")
    if semantic_score is not None:
        reasons.append(f"Semantic match: {round(semantic_score)}%")

    rationale = (
        ". ".join(reasons) + "."
        if reasons
        else "Heuristic match based on available skills and metadata."
    )
    return FitResult(
        score=score,
        rationale=rationale,
        confidence=HEURISTIC_CONFIDENCE,
        method="heuristic",
        reasons=reasons,
    )


def decision_from_score(score: float) -> str:
    if score >= 85:
        return "STRONG_PASS"
    if score >= 75:
        return "PASS"
    if score >= 60:
        return "BORDERLINE"
    return "FAIL"


def fnv1a_32(text: str) -> str:
    """32-bit FNV-1a over UTF-16 code units, as lowercase hex without padding."""
    value = FNV_OFFSET_BASIS
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        value ^= data[i] | (data[i + 1] << 8)
        value = (value * FNV_PRIME) & 0xFFFFFFFF
    return format(value, "x")


def job_fingerprint(job: Job) -> str:
    canonical = json.dumps(
        {
            "title": job.title,
            "dept": job.department,
            "loc": job.location,
            "skills": sorted(s.strip().lower() for s in job.required_skills),
            "desc": job.description[:400],
        },
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return fnv1a_32(canonical)


def external_id_for_job(job: Job, source: str = "ui") -> str:
    """Stable id for shortlist artifacts of an unchanged job, e.g. 'shortlist_ui_v1:9f3a...'."""
    return f"shortlist_{source}_v1:{job_fingerprint(job)}"


class FitAnalysisService:
    """Candidate/job fit scoring.

    Args:
        ai: AI gateway. Defaults to the process-wide service.
        degraded: Degraded-mode reporter.
    """

    def __init__(
        self,
        ai: Optional[AIService] = None,
        degraded: Optional[DegradedModeService] = None,
    ):
        self.ai = ai or get_ai_service()
        self.degraded = degraded or get_degraded_mode_service()

    def analyze(
        self, job: Job, candidate: Candidate, semantic_score: Optional[float] = None
    ) -> FitResult:
        fallback = compute_heuristic_fit(job, candidate, semantic_score)
        if not self.ai.is_available():
            return fallback

        prompt = self._build_prompt(job, candidate, semantic_score)
        try:
            with log_performance("fit_analysis", job_id=job.id, candidate_id=candidate.id):
                data = self.ai.generate_json(FIT_SYSTEM_PROMPT, prompt, max_tokens=600)
        except AppError as e:
            self._report(e, job, candidate)
            return fallback

        validated = validate_fit_score(
            {
                "score": data.get("score", fallback.score),
                "confidence": data.get("confidence", DEFAULT_AI_CONFIDENCE),
                "rationale": data.get("rationale") or fallback.rationale,
                "reasons": data.get("reasons"),
            }
        )
        if not validated.validation.valid:
            self._report(
                UpstreamError(
                    "FitAnalysisService",
                    "AI fit score failed output validation",
                    details={"issues": validated.validation.messages()},
                ),
                job,
                candidate,
            )
            return fallback

        self.degraded.clear("fit_analysis")
        return FitResult(
            score=int(_clamp(round(validated.score), 0, 100)),
            rationale=validated.rationale or fallback.rationale,
            confidence=validated.confidence,
            method="ai",
            reasons=validated.reasons or fallback.reasons,
        )

    def _build_prompt(
        self, job: Job, candidate: Candidate, semantic_score: Optional[float]
    ) -> str:
        job_block = "\n".join(
            [
                f"Title: {sanitize_short(job.title)}",
                f"Department: {sanitize_short(job.department)}",
                f"Location: {sanitize_short(job.location)}",
                f"Required skills: {', '.join(sanitize_list(job.required_skills))}",
                f"Description: {sanitize_for_prompt(job.description[:1200], 1200)}",
            ]
        )
        summary = (candidate.summary or candidate.notes).strip()[:800]
        candidate_block = "\n".join(
            [
                f"Name: {sanitize_short(candidate.name)}",
                f"Current role: {sanitize_short(candidate.role)}",
                f"Location: {sanitize_short(candidate.location)}",
                f"Experience (years): {candidate.experience_years or 0:g}",
                f"Skills: {', '.join(sanitize_list(candidate.skills))}",
                f"Summary: {sanitize_for_prompt(summary, 800)}",
            ]
        )
        return build_secure_prompt(
            "Score the candidate below against the job.",
            [("JOB", job_block), ("CANDIDATE", candidate_block)],
            FIT_OUTPUT_SPEC.format(
                semantic_score="N/A" if semantic_score is None else semantic_score
            ),
        )

    def _report(self, error: AppError, job: Job, candidate: Candidate) -> None:
        self.degraded.report(
            "fit_analysis",
            error,
            "Fit score is heuristic (skills, semantic signal, experience) instead of AI.",
            candidate_id=candidate.id,
            job_id=job.id,
            input={"job_id": job.id, "candidate_id": candidate.id},
        )


_fit_analysis_service: Optional[FitAnalysisService] = None


def get_fit_analysis_service() -> FitAnalysisService:
    global _fit_analysis_service
    if _fit_analysis_service is None:
        _fit_analysis_service = FitAnalysisService()
    return _fit_analysis_service
