"""
Semantic Search API Routes.

Routes for indexing candidates and searching them by meaning rather than
keywords. All routes need embeddings; without AI they answer NOT_CONFIGURED.
"""

from typing import List

from fastapi import APIRouter, Query

from talentsonar.config.request_schemas import IndexCandidateRequest, SemanticSearchRequest
from talentsonar.config.schemas import SemanticSearchResult
from talentsonar.services.semantic_match import get_candidate_index
from talentsonar.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])


@router.post("/index")
def index_candidate(payload: IndexCandidateRequest) -> dict:
    index = get_candidate_index()
    index.index_candidate(payload.candidate)
    return {"ok": True, "candidate_id": payload.candidate.id, "count": index.count()}


@router.post("", response_model=List[SemanticSearchResult])
def semantic_search(payload: SemanticSearchRequest) -> List[SemanticSearchResult]:
    results = get_candidate_index().search(
        payload.query,
        threshold=payload.threshold,
        limit=payload.limit,
        type=payload.type,
    )
    logger.info(
        "Semantic search complete",
        extra={"extra_fields": {"results": len(results), "threshold": payload.threshold}},
    )
    return results


@router.get("/similar/{candidate_id}", response_model=List[SemanticSearchResult])
def similar_candidates(
    candidate_id: str,
    threshold: float = Query(default=0.7, ge=0, le=1),
    limit: int = Query(default=10, ge=1, le=50),
) -> List[SemanticSearchResult]:
    return get_candidate_index().find_similar(candidate_id, threshold=threshold, limit=limit)


@router.get("/count")
def candidate_count() -> dict:
    return {"count": get_candidate_index().count()}
