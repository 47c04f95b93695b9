# ---------- TESTS FOR MATCH SCORECARD ----------

import pytest

from talentsonar.config.schemas import Candidate, Job
from talentsonar.services.match_scorecard import (
    compute_match_scorecard,
    infer_seniority_from_title,
    infer_seniority_from_years,
)

# --- MOCK DATA ---

mock_candidate = Candidate(
    id="cand-1",
    name="Jane Doe",
    role="Backend Developer",
    skills=["Python", "Django", "AWS"],
    email="jane@example.com",
    experience_years=6,
    summary="Builds APIs for logistics platforms.",
)

mock_job = Job(
    id="job-1",
    title="Senior Backend Engineer",
    required_skills=["python", "django", "kubernetes"],
)


def test_scorecard_for_strong_backend_candidate():
    """Subscores, overall weighting, risks and evidence for a typical match."""
    card = compute_match_scorecard(mock_candidate, mock_job)

    assert card.subscores.skill_fit == 67
    assert card.subscores.seniority_fit == 90
    assert card.subscores.domain_fit == 68
    assert card.subscores.evidence_quality == 74
    assert card.overall_score == 74

    assert card.matched_skills == ["python", "django"]
    assert card.missing_required_skills == ["kubernetes"]
    assert card.expected_seniority == "senior"
    assert card.inferred_seniority == "senior"
    assert card.risks == [
        "Missing 1 required skill.",
        "Very small skill list; match confidence may be overstated.",
    ]

    evidence_ids = [e.id for e in card.evidence]
    assert evidence_ids == [
        "skill:python",
        "skill:django",
        "risk:missing-required",
        "seniority:years",
        "role:title",
        "domain:overlap",
        "summary:present",
    ]
    overlap = next(e for e in card.evidence if e.id == "domain:overlap")
    assert overlap.detail == "Shared keywords between job and profile: backend, python, django."


def test_job_without_required_skills_and_unknown_experience():
    candidate = Candidate(id="c", name="Sam")
    job = Job(id="j", title="Engineer")

    card = compute_match_scorecard(candidate, job)

    assert card.subscores.skill_fit == 55
    assert card.subscores.seniority_fit == 55
    assert card.expected_seniority == "unspecified"
    assert card.inferred_seniority == "unknown"
    assert card.missing_required_skills == []
    assert "seniority:unknown" in [e.id for e in card.evidence]
    assert "Low evidence quality (profile is sparse or missing key fields)." in card.risks


def test_seniority_mismatch_is_penalized():
    candidate = Candidate(id="c", name="Sam", skills=["a", "b", "c", "d"], experience_years=12)
    job = Job(id="j", title="Junior Analyst", required_skills=["a"])

    card = compute_match_scorecard(candidate, job)

    assert card.subscores.seniority_fit == 20
    assert card.expected_seniority == "junior"
    assert card.inferred_seniority == "lead"
    assert 'Possible seniority mismatch (expected "junior", inferred "lead").' in card.risks


def test_abbreviated_title_sets_expected_seniority():
    candidate = Candidate(id="c", name="Sam", skills=["Python"], experience_years=1)
    job = Job(id="j", title="Sr. Software Engineer", required_skills=["Python"])

    card = compute_match_scorecard(candidate, job)

    # 4 years short of the senior band: 90 - 4 * 15
    assert card.expected_seniority == "senior"
    assert card.subscores.seniority_fit == 30
    assert 'Possible seniority mismatch (expected "senior", inferred "intern").' in card.risks


def test_unknown_years_against_titled_role():
    candidate = Candidate(id="c", name="Sam", skills=["Python"])
    card = compute_match_scorecard(candidate, mock_job)
    assert card.subscores.seniority_fit == 50
    assert card.inferred_seniority == "unknown"


def test_legacy_experience_field_is_used():
    candidate = Candidate.model_validate({"id": "c", "name": "Sam", "experience": 6})
    card = compute_match_scorecard(candidate, mock_job)
    assert card.inferred_seniority == "senior"


def test_overall_score_is_bounded():
    card = compute_match_scorecard(mock_candidate, mock_job)
    assert 0 <= card.overall_score <= 100
    for value in card.subscores.model_dump().values():
        assert 0 <= value <= 100


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Senior Backend Engineer", "senior"),
        ("Sr Data Engineer", "senior"),
        ("Sr. Software Engineer", "senior"),
        ("Jr. Developer", "junior"),
        ("Principal Architect", "lead"),
        ("International Sales Lead", "lead"),
        ("Software Engineer II", "mid"),
        ("Summer Intern", "intern"),
    ],
)
def test_infer_seniority_from_title(title, expected):
    assert infer_seniority_from_title(title).label == expected


def test_infer_seniority_from_title_without_keyword():
    assert infer_seniority_from_title("International Relations Officer") is None


def test_infer_seniority_from_years():
    assert infer_seniority_from_years(None) is None
    assert infer_seniority_from_years(0.5).label == "intern"
    assert infer_seniority_from_years(3).label == "mid"
    assert infer_seniority_from_years(8).label == "senior"
    assert infer_seniority_from_years(15).label == "lead"
