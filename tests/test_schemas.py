# ---------- TESTS FOR DOMAIN SCHEMAS ----------

import math

from talentsonar.config import Candidate, Job, ParsedResume, to_candidate_snapshot, to_job_snapshot


def test_candidate_folds_legacy_experience():
    candidate = Candidate.model_validate({"id": "c", "name": "Sam", "experience": 4})
    assert candidate.experience_years == 4


def test_candidate_ignores_unknown_fields():
    candidate = Candidate.model_validate({"id": "c", "name": "Sam", "favourite_color": "blue"})
    assert not hasattr(candidate, "favourite_color")


def test_candidate_snapshot_normalizes_fields():
    candidate = Candidate(
        id="c",
        name="  ",
        skills=["Python", " ", "SQL "],
        experience_years=math.nan,
        notes=" Met at a meetup. ",
    )

    snapshot = to_candidate_snapshot(candidate)

    assert snapshot.name == "Unknown"
    assert snapshot.type == "uploaded"
    assert snapshot.email == ""
    assert snapshot.skills == ["Python", "SQL"]
    assert snapshot.experience_years == 0.0
    assert snapshot.summary == "Met at a meetup."


def test_job_snapshot_trims_fields():
    snapshot = to_job_snapshot(Job(id="j", title=" Data Engineer ", required_skills=["SQL", ""]))
    assert snapshot.title == "Data Engineer"
    assert snapshot.required_skills == ["SQL"]
    assert snapshot.status == "open"


def test_parsed_resume_coerces_loose_output():
    parsed = ParsedResume.model_validate(
        {
            "name": None,
            "skills": "Python",
            "experience": [{"title": "Dev", "company": None}, "junk"],
            "education": None,
        }
    )
    assert parsed.name == ""
    assert parsed.skills == []
    assert len(parsed.experience) == 1
    assert parsed.experience[0].company == ""
    assert parsed.education == []
