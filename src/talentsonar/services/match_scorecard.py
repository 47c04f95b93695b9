"""
Deterministic Match Scorecard.

Explainable candidate/job scoring with no LLM involved. Four subscores (0-100)
are combined with fixed weights:

    overall = 0.45 * skill_fit + 0.25 * seniority_fit
            + 0.20 * domain_fit + 0.10 * evidence_quality

Alongside the score the scorecard lists the evidence it relied on and the risks
a recruiter should check before trusting it.
"""

import math
import re
from typing import List, NamedTuple, Optional, Sequence, Tuple

from talentsonar.config.schemas import (
    Candidate,
    Job,
    MatchScorecard,
    MatchSubscores,
    ScorecardEvidence,
)
from talentsonar.utils.normalization import jaccard, normalize_token_text, tokenize


class SeniorityBand(NamedTuple):
    label: str
    min_years: float
    max_years: float
    keywords: Tuple[str, ...]


SENIORITY_BANDS = (
    SeniorityBand("intern", 0, 1, ("intern", "internship")),
    SeniorityBand("junior", 0, 2, ("junior", "jr", "associate")),
    SeniorityBand("mid", 2, 5, ("mid", "intermediate", "ii", "2")),
    SeniorityBand("senior", 5, 9, ("senior", "sr", "iii", "3")),
    SeniorityBand("lead", 7, 30, ("lead", "principal", "staff", "manager", "head")),
)

UNSPECIFIED = SeniorityBand("unspecified", 0, 30, ())
UNKNOWN = SeniorityBand("unknown", 0, 30, ())

_TITLE_WORD_SPLIT = re.compile(r"[^a-z0-9+#]+")

WEIGHTS = {"skill": 0.45, "seniority": 0.25, "domain": 0.2, "evidence": 0.1}


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    if not math.isfinite(value):
        return low
    return min(high, max(low, value))


def _years(candidate: Candidate) -> Optional[float]:
    years = candidate.experience_years
    if years is None or not math.isfinite(years):
        return None
    return max(0.0, years)


def infer_seniority_from_title(title: str) -> Optional[SeniorityBand]:
    # Whole words only: "International" is not "intern"; "Sr." is "sr"
    words = set(_TITLE_WORD_SPLIT.split(normalize_token_text(title)))
    for band in SENIORITY_BANDS:
        if any(k in words for k in band.keywords):
            return band
    return None


def infer_seniority_from_years(years: Optional[float]) -> Optional[SeniorityBand]:
    if years is None:
        return None
    for band in SENIORITY_BANDS:
        if band.min_years <= years <= band.max_years:
            return band
    return None


def _skill_fit(candidate: Candidate, job: Job) -> Tuple[List[str], List[str], int]:
    required = [s for s in job.required_skills if s]
    if not required:
        return [], [], 55

    have = {s.lower() for s in candidate.skills if s}
    matched = [s for s in required if s.lower() in have]
    missing = [s for s in required if s.lower() not in have]
    return matched, missing, int(clamp(round(len(matched) / len(required) * 100)))


def _seniority_fit(candidate: Candidate, job: Job) -> Tuple[str, str, int]:
    expected = infer_seniority_from_title(job.title) or UNSPECIFIED
    years = _years(candidate)
    inferred = infer_seniority_from_years(years) or (UNKNOWN if years is None else UNSPECIFIED)

    if expected is UNSPECIFIED and inferred is UNKNOWN:
        return expected.label, inferred.label, 55
    if years is None:
        return expected.label, inferred.label, 60 if expected is UNSPECIFIED else 50
    if expected.min_years <= years <= expected.max_years:
        return expected.label, inferred.label, 90

    if years < expected.min_years:
        distance = expected.min_years - years
    else:
        distance = years - expected.max_years
    penalty = min(70, round(distance * 15))
    return expected.label, inferred.label, int(clamp(90 - penalty))


def _domain_fit(candidate: Candidate, job: Job) -> Tuple[int, List[str]]:
    job_tokens = tokenize(" ".join(filter(None, [job.title, job.department, *job.required_skills])))
    cand_tokens = tokenize(" ".join(filter(None, [candidate.role.strip(), *candidate.skills])))
    # Jaccard is small on short texts, so it is scaled up
    score = int(clamp(round(jaccard(job_tokens, cand_tokens) * 180)))

    cand_set = set(cand_tokens)
    overlap: List[str] = []
    for token in job_tokens:
        if token in cand_set and token not in overlap:
            overlap.append(token)
    return score, overlap[:8]


def _evidence_quality(candidate: Candidate, job: Job) -> int:
    skills_count = len(candidate.skills)
    score = 35
    if skills_count >= 10:
        score += 20
    elif skills_count >= 6:
        score += 12
    elif skills_count >= 3:
        score += 6
    if (candidate.summary or candidate.notes).strip():
        score += 12
    if _years(candidate) is not None:
        score += 12
    if candidate.email and "@" in candidate.email:
        score += 5
    if job.required_skills:
        score += 4
    return int(clamp(score))


def _evidence(
    candidate: Candidate,
    job: Job,
    matched: Sequence[str],
    missing: Sequence[str],
    expected: str,
    inferred: str,
    overlap: Sequence[str],
) -> List[ScorecardEvidence]:
    evidence = [
        ScorecardEvidence(
            id=f"skill:{skill.lower()}",
            title=f"Skill match: {skill}",
            detail=f'Candidate lists "{skill}" and it appears in required skills for "{job.title}".',
            source="profile.skills",
            strength="medium",
        )
        for skill in matched[:10]
    ]

    if missing:
        more = "…" if len(missing) > 8 else ""
        evidence.append(
            ScorecardEvidence(
                id="risk:missing-required",
                title="Missing required skills",
                detail=f"Missing: {', '.join(missing[:8])}{more}.",
                source="profile.skills",
                strength="weak",
            )
        )

    years = _years(candidate)
    if years is not None:
        evidence.append(
            ScorecardEvidence(
                id="seniority:years",
                title="Experience signal",
                detail=f'Profile indicates ~{years:g} years of experience; expected seniority for this role is "{expected}".',
                source="profile.history",
                strength="medium" if expected == "unspecified" else "strong",
            )
        )
    else:
        evidence.append(
            ScorecardEvidence(
                id="seniority:unknown",
                title="Experience signal",
                detail="No explicit years-of-experience found on profile; seniority fit is inferred with lower confidence.",
                source="inferred",
                strength="weak",
            )
        )

    role = candidate.role.strip()
    if role:
        evidence.append(
            ScorecardEvidence(
                id="role:title",
                title="Role/title signal",
                detail=f'Candidate role/title: "{role}". Inferred seniority: "{inferred}".',
                source="profile.role",
                strength="medium",
            )
        )

    if overlap:
        evidence.append(
            ScorecardEvidence(
                id="domain:overlap",
                title="Domain overlap",
                detail=f"Shared keywords between job and profile: {', '.join(overlap)}.",
                source="inferred",
                strength="medium",
            )
        )

    if (candidate.summary or candidate.notes).strip():
        evidence.append(
            ScorecardEvidence(
                id="summary:present",
                title="Summary available",
                detail="Profile contains a summary/notes section used for explainability (not quoted here).",
                source="profile.summary",
                strength="weak",
            )
        )

    return evidence


def _risks(
    missing: Sequence[str],
    expected: str,
    inferred: str,
    seniority_fit: int,
    evidence_quality: int,
    skills_count: int,
) -> List[str]:
    risks = []
    if missing:
        plural = "" if len(missing) == 1 else "s"
        risks.append(f"Missing {len(missing)} required skill{plural}.")
    if (
        expected != "unspecified"
        and inferred != "unknown"
        and expected != inferred
        and seniority_fit < 70
    ):
        risks.append(f'Possible seniority mismatch (expected "{expected}", inferred "{inferred}").')
    if evidence_quality < 55:
        risks.append("Low evidence quality (profile is sparse or missing key fields).")
    if skills_count < 4:
        risks.append("Very small skill list; match confidence may be overstated.")
    return risks


def compute_match_scorecard(candidate: Candidate, job: Job) -> MatchScorecard:
    matched, missing, skill_fit = _skill_fit(candidate, job)
    expected, inferred, seniority_fit = _seniority_fit(candidate, job)
    domain_fit, overlap = _domain_fit(candidate, job)
    evidence_quality = _evidence_quality(candidate, job)

    overall = int(
        clamp(
            round(
                skill_fit * WEIGHTS["skill"]
                + seniority_fit * WEIGHTS["seniority"]
                + domain_fit * WEIGHTS["domain"]
                + evidence_quality * WEIGHTS["evidence"]
            )
        )
    )

    return MatchScorecard(
        overall_score=overall,
        subscores=MatchSubscores(
            skill_fit=skill_fit,
            seniority_fit=seniority_fit,
            domain_fit=domain_fit,
            evidence_quality=evidence_quality,
        ),
        matched_skills=matched,
        missing_required_skills=missing,
        expected_seniority=expected,
        inferred_seniority=inferred,
        risks=_risks(missing, expected, inferred, seniority_fit, evidence_quality, len(candidate.skills)),
        evidence=_evidence(candidate, job, matched, missing, expected, inferred, overlap),
    )
