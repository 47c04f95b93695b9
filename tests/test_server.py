# ---------- TESTS FOR API SERVER ----------

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from talentsonar.api.server import app
from talentsonar.config.schemas import Candidate, Job
from talentsonar.services.degraded_mode import DegradedModeService
from talentsonar.services.fit_analysis import FitAnalysisService
from talentsonar.services.outreach import build_deterministic
from talentsonar.services.pipeline_events import PipelineEventService
from talentsonar.services.resume_parser import ResumeParserService
from talentsonar.services.semantic_match import CandidateIndex
from talentsonar.utils.exceptions import RateLimitedError, UpstreamError
from talentsonar.utils.llms import AIService

client = TestClient(app)

# --- MOCK DATA ---

mock_job = {
    "id": "job-1",
    "title": "Senior Backend Engineer",
    "required_skills": ["python", "django", "kubernetes"],
}

mock_candidate = {
    "id": "cand-1",
    "name": "Jane Doe",
    "role": "Backend Developer",
    "skills": ["Python", "Django", "AWS"],
    "email": "jane@example.com",
    "experience_years": 6,
    "summary": "Builds APIs for logistics platforms.",
}

mock_parsed_resume = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "skills": ["Python", "Django"],
    "experience": [],
    "education": [],
    "summary": "Backend engineer.",
}


def _embed(text):
    if "Alice" in text or "react" in text.lower():
        return [1.0, 0.0]
    return [0.0, 1.0]


# ---------- health ----------


@patch("talentsonar.api.routes.health.get_ai_service")
@patch("talentsonar.api.routes.health.get_degraded_mode_service")
def test_health_ok(mock_get_degraded, mock_get_ai):
    mock_get_degraded.return_value = DegradedModeService()
    mock_get_ai.return_value.is_available.return_value = False

    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "ai_available": False,
        "degraded_features": [],
        "recent_degradations": [],
    }


@patch("talentsonar.api.routes.health.get_ai_service")
@patch("talentsonar.api.routes.health.get_degraded_mode_service")
def test_health_degraded(mock_get_degraded, mock_get_ai):
    degraded = DegradedModeService()
    degraded.report("semantic_match", UpstreamError("AIService", "boom"), "No semantic score.")
    mock_get_degraded.return_value = degraded
    mock_get_ai.return_value.is_available.return_value = True

    data = client.get("/api/health").json()

    assert data["status"] == "degraded"
    assert data["ai_available"] is True
    assert data["degraded_features"] == ["semantic_match"]
    assert data["recent_degradations"][0]["error_code"] == "UPSTREAM"


def test_request_id_is_echoed():
    response = client.get("/api/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


# ---------- analysis ----------


@patch("talentsonar.api.routes.analysis.get_semantic_match_service")
@patch("talentsonar.api.routes.analysis.get_fit_analysis_service")
def test_fit_with_supplied_semantic_score(mock_get_fit, mock_get_semantic, fake_ai_factory):
    mock_get_fit.return_value = FitAnalysisService(
        ai=fake_ai_factory(available=False), degraded=DegradedModeService()
    )

    response = client.post(
        "/api/fit", json={"job": mock_job, "candidate": mock_candidate, "semantic_score": 80}
    )

    assert response.status_code == 200
    data = response.json()
    # 70 * 2/3 + 0.25 * 80 + 10
    assert data["score"] == 77
    assert data["method"] == "heuristic"
    assert data["semantic_score"] == 80
    assert data["decision"] == "PASS"
    assert data["external_id"].startswith("shortlist_ui_v1:")
    mock_get_semantic.assert_not_called()


@patch("talentsonar.api.routes.analysis.get_semantic_match_service")
@patch("talentsonar.api.routes.analysis.get_fit_analysis_service")
def test_fit_computes_semantic_score(mock_get_fit, mock_get_semantic, fake_ai_factory):
    mock_get_fit.return_value = FitAnalysisService(
        ai=fake_ai_factory(available=False), degraded=DegradedModeService()
    )
    mock_get_semantic.return_value.score.return_value = None

    data = client.post("/api/fit", json={"job": mock_job, "candidate": mock_candidate}).json()

    assert data["semantic_score"] is None
    assert data["score"] == 57
    assert data["decision"] == "FAIL"
    mock_get_semantic.return_value.score.assert_called_once()


def test_fit_rejects_out_of_range_semantic_score():
    response = client.post(
        "/api/fit", json={"job": mock_job, "candidate": mock_candidate, "semantic_score": 120}
    )
    assert response.status_code == 422
    assert response.json()["message"] == "Validation error: Please check your input data"


def test_scorecard():
    response = client.post("/api/scorecard", json={"job": mock_job, "candidate": mock_candidate})

    assert response.status_code == 200
    data = response.json()
    assert data["overall_score"] == 74
    assert data["subscores"] == {
        "skill_fit": 67,
        "seniority_fit": 90,
        "domain_fit": 68,
        "evidence_quality": 74,
    }
    assert data["missing_required_skills"] == ["kubernetes"]


@patch("talentsonar.api.routes.analysis.get_pipeline_event_service")
def test_next_action_with_supplied_events(mock_get_events):
    payload = {
        "candidate_id": "cand-1",
        "job_matches": [{"job": mock_job, "score": 50}],
        "pipeline_events": [
            {
                "id": "evt-1",
                "candidate_id": "cand-1",
                "job_id": "job-1",
                "event_type": "stage_moved",
                "to_stage": "long_list",
                "created_at": "2024-06-01T12:00:00Z",
            }
        ],
    }

    data = client.post("/api/next-action", json=payload).json()

    assert data["suggestion"]["type"] == "request_screening"
    assert data["suggestion"]["job"]["id"] == "job-1"
    mock_get_events.assert_not_called()


@patch("talentsonar.api.routes.analysis.get_pipeline_event_service")
def test_next_action_reads_event_log(mock_get_events):
    mock_get_events.return_value.list_for_candidate.return_value = []
    payload = {"candidate_id": "cand-1", "job_matches": [{"job": mock_job, "score": 50}]}

    data = client.post("/api/next-action", json=payload).json()

    assert data["suggestion"]["type"] == "add_pipeline"
    mock_get_events.return_value.list_for_candidate.assert_called_once_with("cand-1")


def test_next_action_nothing_to_suggest():
    payload = {"candidate_id": "cand-1", "job_matches": [], "pipeline_events": []}
    assert client.post("/api/next-action", json=payload).json() == {"suggestion": None}


# ---------- outreach ----------


@patch("talentsonar.api.routes.outreach.get_outreach_service")
def test_outreach_returns_draft(mock_get_outreach):
    mock_get_outreach.return_value.build.return_value = build_deterministic(
        Job(**mock_job), Candidate(**mock_candidate)
    )

    response = client.post(
        "/api/outreach",
        json={"job": mock_job, "candidate": mock_candidate, "evidence_claim": "Shipped X."},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["method"] == "deterministic"
    assert data["subject"] == "Quick question — Senior Backend Engineer"
    kwargs = mock_get_outreach.return_value.build.call_args.kwargs
    assert kwargs["evidence_claim"] == "Shipped X."


def test_outreach_rejects_long_evidence_claim():
    response = client.post(
        "/api/outreach",
        json={"job": mock_job, "candidate": mock_candidate, "evidence_claim": "x" * 501},
    )
    assert response.status_code == 422


# ---------- resume ----------


@patch("talentsonar.api.routes.resume.get_resume_parser_service")
def test_parse_resume(mock_get_parser, fake_ai_factory):
    mock_get_parser.return_value = ResumeParserService(
        ai=fake_ai_factory(json_responses=[dict(mock_parsed_resume)]), models=["m1"]
    )

    response = client.post("/api/resume/parse", json={"text": "Jane Doe, backend engineer"})

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["model"] == "m1"
    assert data["parsed_resume"]["name"] == "Jane Doe"
    assert data["warnings"] == []
    assert data["injection_warning"] is None


@patch("talentsonar.api.routes.resume.get_resume_parser_service")
def test_parse_resume_without_ai(mock_get_parser, fake_ai_factory):
    mock_get_parser.return_value = ResumeParserService(
        ai=fake_ai_factory(available=False), models=["m1"]
    )

    response = client.post("/api/resume/parse", json={"text": "Jane Doe"})

    assert response.status_code == 503
    data = response.json()
    assert data["ok"] is False
    assert data["error_code"] == "NOT_CONFIGURED"
    assert data["debug_id"].startswith("dbg_")


@patch("talentsonar.api.routes.resume.get_resume_parser_service")
def test_parse_resume_rate_limited(mock_get_parser):
    mock_get_parser.return_value.parse.side_effect = RateLimitedError(
        "AIService", "quota", retry_after_ms=2500
    )

    response = client.post("/api/resume/parse", json={"text": "Jane Doe"})

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "3"
    assert response.json()["retry_after_ms"] == 2500


def test_parse_resume_rejects_blank_text():
    response = client.post("/api/resume/parse", json={"text": "   "})
    assert response.status_code == 422
    assert "text must contain resume content" in response.json()["detail"][0]["message"]


@patch("talentsonar.api.routes.resume.get_resume_parser_service")
def test_upload_resume(mock_get_parser, fake_ai_factory):
    mock_get_parser.return_value = ResumeParserService(
        ai=fake_ai_factory(json_responses=[dict(mock_parsed_resume)]), models=["m1"]
    )
    content = b"Jane Doe\nBackend engineer\n"

    response = client.post(
        "/api/resume/upload", files={"file": ("resume.txt", content, "text/plain")}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["parsed_resume"]["name"] == "Jane Doe"
    assert data["file"]["filename"] == "resume.txt"
    assert data["file"]["bytes"] == len(content)
    assert data["file"]["text_preview"] == "Jane Doe\nBackend engineer"
    assert len(data["file"]["sha256"]) == 64


@patch("talentsonar.api.routes.resume.get_resume_parser_service")
def test_upload_empty_file(mock_get_parser, fake_ai_factory):
    mock_get_parser.return_value = ResumeParserService(ai=fake_ai_factory(), models=["m1"])

    response = client.post("/api/resume/upload", files={"file": ("resume.pdf", b"", "application/pdf")})

    assert response.status_code == 400
    assert response.json()["message"] == "Uploaded file is empty."


# ---------- pipeline ----------


@patch("talentsonar.api.routes.pipeline.get_pipeline_event_service")
def test_pipeline_events_roundtrip(mock_get_events):
    mock_get_events.return_value = PipelineEventService(table_name="")

    response = client.post(
        "/api/pipeline/events",
        json={
            "candidate_id": "cand-1",
            "job_id": "job-1",
            "event_type": "stage_moved",
            "to_stage": "screening",
            "actor_type": "agent",
        },
    )
    assert response.status_code == 201
    created = response.json()
    assert created["to_stage"] == "screening"

    listed = client.get("/api/pipeline/events/cand-1").json()
    assert [e["id"] for e in listed] == [created["id"]]


def test_pipeline_event_validation():
    response = client.post(
        "/api/pipeline/events", json={"candidate_id": "", "job_id": "job-1", "event_type": "x"}
    )
    assert response.status_code == 422

    response = client.get("/api/pipeline/events/cand-1?limit=0")
    assert response.status_code == 422


# ---------- search ----------


@pytest.fixture
def candidate_index(fake_ai_factory):
    index = CandidateIndex(ai=fake_ai_factory(embed=_embed))
    with patch("talentsonar.api.routes.search.get_candidate_index", return_value=index):
        yield index


def test_search_index_and_query(candidate_index):
    response = client.post(
        "/api/search/index",
        json={"candidate": {"id": "alice", "name": "Alice", "type": "internal", "skills": ["React"]}},
    )
    assert response.json() == {"ok": True, "candidate_id": "alice", "count": 1}
    client.post("/api/search/index", json={"candidate": {"id": "bob", "name": "Bob", "skills": ["Go"]}})

    results = client.post("/api/search", json={"query": "React developer"}).json()
    assert [r["id"] for r in results] == ["alice"]
    assert results[0]["type"] == "internal"

    assert client.get("/api/search/count").json() == {"count": 2}


def test_search_similar_unknown_candidate(candidate_index):
    response = client.get("/api/search/similar/nobody")
    assert response.status_code == 404
    assert response.json()["error_code"] == "NOT_FOUND"


def test_search_rejects_blank_query(candidate_index):
    assert client.post("/api/search", json={"query": "   "}).status_code == 422


def test_search_without_ai():
    index = CandidateIndex(ai=AIService(disabled=True, client=MagicMock()))
    with patch("talentsonar.api.routes.search.get_candidate_index", return_value=index):
        response = client.post("/api/search", json={"query": "React developer"})

    assert response.status_code == 503
    assert response.json()["error_code"] == "NOT_CONFIGURED"
