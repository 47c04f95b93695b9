"""
Semantic Matching over Text Embeddings.

Two consumers share the same embedding path (AIService.embed_text, which caches
vectors by content signature):

- SemanticMatchService.score: job/candidate similarity on a 0-100 scale, used
  as an extra signal by fit analysis. Pair scores are cached as well.
- CandidateIndex: in-process vector index of candidates for natural-language
  search ("senior React developer with leadership experience") and
  "more like this" recommendations.

Without embeddings (no AI, provider failure) scores are None and the failure
is reported to degraded mode; search raises, since it has nothing to fall
back on.
"""

import threading
from typing import Dict, List, NamedTuple, Optional, Sequence

import numpy as np

from talentsonar.config import settings
from talentsonar.config.schemas import Candidate, Job, SemanticSearchResult
from talentsonar.services.degraded_mode import DegradedModeService, get_degraded_mode_service
from talentsonar.utils.cache import TTLCache, content_signature
from talentsonar.utils.exceptions import AppError, NotFoundError, UpstreamError
from talentsonar.utils.llms import AIService, get_ai_service
from talentsonar.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SEARCH_THRESHOLD = 0.65
DEFAULT_SIMILAR_THRESHOLD = 0.7
DEFAULT_LIMIT = 10


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 for empty or length-mismatched vectors and when either has
    zero norm.
    """
    if len(a) == 0 or len(b) == 0 or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


def unit_vector(vector: Sequence[float]) -> np.ndarray:
    """Vector scaled to unit length; a zero vector is returned as is."""
    v = np.asarray(vector, dtype=float)
    norm = np.linalg.norm(v)
    return v / norm if norm > 0 else v


def candidate_text(candidate: Candidate) -> str:
    """Deterministic text used to embed a candidate."""
    parts = [
        f"Name: {candidate.name}",
        f"Role: {candidate.role}" if candidate.role else "",
        f"Skills: {', '.join(candidate.skills)}" if candidate.skills else "",
        f"Experience: {candidate.experience_years:g} years"
        if candidate.experience_years is not None
        else "",
        f"Summary: {candidate.summary or candidate.notes}"
        if (candidate.summary or candidate.notes)
        else "",
    ]
    return "\n".join(p for p in parts if p)


def job_text(job: Job) -> str:
    """Deterministic text used to embed a job."""
    parts = [
        f"Title: {job.title}",
        f"Department: {job.department}" if job.department else "",
        f"Required skills: {', '.join(job.required_skills)}" if job.required_skills else "",
        f"Description: {job.description}" if job.description else "",
    ]
    return "\n".join(p for p in parts if p)


class SemanticMatchService:
    """Embedding-based job/candidate similarity."""

    def __init__(
        self,
        ai: Optional[AIService] = None,
        degraded: Optional[DegradedModeService] = None,
    ):
        self.ai = ai or get_ai_service()
        self.degraded = degraded or get_degraded_mode_service()
        self.cache = TTLCache(settings.EMBEDDING_CACHE_TTL_SECONDS)

    def score(self, job: Job, candidate: Candidate) -> Optional[float]:
        """Similarity x 100, clamped to [0, 100] and rounded to one decimal.

        Returns None when embeddings are unavailable.
        """
        j_text, c_text = job_text(job), candidate_text(candidate)
        key = content_signature(j_text, c_text)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        if not self.ai.is_available():
            return None

        try:
            job_vector = self.ai.embed_text(j_text)
            candidate_vector = self.ai.embed_text(c_text)
        except AppError as e:
            self.degraded.report(
                "semantic_match",
                e,
                "Semantic similarity is missing from fit scores.",
                candidate_id=candidate.id,
                job_id=job.id,
            )
            return None
        self.degraded.clear("semantic_match")

        similarity = cosine_similarity(job_vector, candidate_vector)
        value = round(max(0.0, min(100.0, similarity * 100)), 1)
        self.cache.set(key, value)
        return value


class IndexedCandidate(NamedTuple):
    candidate: Candidate
    content: str
    embedding: List[float]


class CandidateIndex:
    """In-process vector index of candidates, keyed by candidate id.

    Embeddings are kept unit-normalized as rows of one matrix (row order in
    `_ids`), so ranking is a single matrix-vector product.
    """

    def __init__(self, ai: Optional[AIService] = None):
        self.ai = ai or get_ai_service()
        self._rows: Dict[str, IndexedCandidate] = {}
        self._ids: List[str] = []
        self._matrix = np.empty((0, 0))
        self._lock = threading.Lock()

    def index_candidate(self, candidate: Candidate) -> None:
        """Embed and upsert a candidate.

        Raises:
            NotConfiguredError, RateLimitedError, UpstreamError: from embedding.
            UpstreamError: The embedding size differs from the indexed rows.
        """
        content = candidate_text(candidate)
        embedding = list(self.ai.embed_text(content))
        with self._lock:
            dimensions = {
                len(row.embedding) for cid, row in self._rows.items() if cid != candidate.id
            }
            if dimensions and len(embedding) not in dimensions:
                raise UpstreamError(
                    "SemanticSearch",
                    "Embedding size does not match the candidate index",
                    details={"expected": sorted(dimensions), "got": len(embedding)},
                )
            self._rows[candidate.id] = IndexedCandidate(candidate, content, embedding)
            self._rebuild()
        logger.info(
            "Indexed candidate",
            extra={"extra_fields": {"candidate_id": candidate.id, "dimensions": len(embedding)}},
        )

    def remove(self, candidate_id: str) -> bool:
        with self._lock:
            removed = self._rows.pop(candidate_id, None) is not None
            if removed:
                self._rebuild()
            return removed

    def _rebuild(self) -> None:
        # Caller holds the lock. Both attributes are replaced, never mutated.
        ids = list(self._rows)
        if ids:
            self._matrix = np.vstack([unit_vector(self._rows[i].embedding) for i in ids])
        else:
            self._matrix = np.empty((0, 0))
        self._ids = ids

    def count(self) -> int:
        with self._lock:
            return len(self._rows)

    def search(
        self,
        query: str,
        threshold: float = DEFAULT_SEARCH_THRESHOLD,
        limit: int = DEFAULT_LIMIT,
        type: Optional[str] = None,
    ) -> List[SemanticSearchResult]:
        """Candidates whose similarity to the query is at least `threshold`.

        Results are sorted by similarity, filtered by candidate type, and only
        then cut to `limit`.
        """
        query_vector = self.ai.embed_text(query)
        results = self._rank(query_vector, threshold)
        if type:
            results = [r for r in results if r.type == type]
        return results[:limit]

    def find_similar(
        self,
        candidate_id: str,
        threshold: float = DEFAULT_SIMILAR_THRESHOLD,
        limit: int = DEFAULT_LIMIT,
    ) -> List[SemanticSearchResult]:
        """Candidates similar to an indexed candidate, excluding itself.

        Raises:
            NotFoundError: The candidate was never indexed.
        """
        with self._lock:
            reference = self._rows.get(candidate_id)
        if reference is None:
            raise NotFoundError("SemanticSearch", "Candidate", candidate_id)

        results = self._rank(reference.embedding, threshold, exclude_id=candidate_id)
        return results[:limit]

    def _rank(
        self,
        vector: Sequence[float],
        threshold: float,
        exclude_id: Optional[str] = None,
    ) -> List[SemanticSearchResult]:
        with self._lock:
            ids, matrix = self._ids, self._matrix
            rows = [self._rows[i] for i in ids]
        if not ids:
            return []

        if len(vector) == matrix.shape[1]:
            similarities = matrix @ unit_vector(vector)
        else:
            similarities = np.zeros(len(ids))

        results = []
        for position in np.argsort(-similarities, kind="stable"):
            row = rows[position]
            similarity = float(similarities[position])
            if row.candidate.id == exclude_id or similarity < threshold:
                continue
            candidate = row.candidate
            results.append(
                SemanticSearchResult(
                    id=candidate.id,
                    name=candidate.name or "Unknown",
                    email=candidate.email,
                    type=candidate.type or "uploaded",
                    skills=list(candidate.skills),
                    similarity=similarity,
                    content=row.content,
                    metadata=dict(candidate.metadata),
                )
            )
        return results


_semantic_match_service: Optional[SemanticMatchService] = None
_candidate_index: Optional[CandidateIndex] = None


def get_semantic_match_service() -> SemanticMatchService:
    global _semantic_match_service
    if _semantic_match_service is None:
        _semantic_match_service = SemanticMatchService()
    return _semantic_match_service


def get_candidate_index() -> CandidateIndex:
    global _candidate_index
    if _candidate_index is None:
        _candidate_index = CandidateIndex()
    return _candidate_index
