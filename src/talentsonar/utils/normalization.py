"""
Text normalization shared by the scoring services.

Skills, pipeline stages and free text arrive in whatever shape the frontend or
the resume parser produced. These helpers bring them to a comparable form.
"""

import re
from typing import Iterable, List, Set

STOPWORDS = {
    "the", "and", "or", "to", "of", "in", "for", "with", "a", "an", "on", "at",
    "by", "from", "as", "is", "are", "be", "this", "that", "these", "those",
    "role", "position", "job", "team", "department",
}

_STAGE_ALIASES = {
    "longlist": "long_list",
    "offer_stage": "offer",
}


def normalize_skill(skill: str) -> str:
    """Lowercase, trim and collapse inner whitespace."""
    return re.sub(r"\s+", " ", (skill or "").strip()).lower()


def normalize_skills(skills: Iterable[str]) -> List[str]:
    """Case-insensitive de-duplication, keeping the first spelling seen."""
    seen: Set[str] = set()
    result = []
    for skill in skills or []:
        if not skill or not str(skill).strip():
            continue
        key = normalize_skill(str(skill))
        if key in seen:
            continue
        seen.add(key)
        result.append(str(skill).strip())
    return result


def normalize_stage(raw) -> str:
    """Normalize a pipeline stage label, e.g. "Long-List" -> "long_list".

    Returns "" for None or blank input.
    """
    value = re.sub(r"[\s-]+", "_", ("" if raw is None else str(raw)).strip().lower())
    return _STAGE_ALIASES.get(value, value)


def normalize_token_text(text: str) -> str:
    text = re.sub(r"[^a-z0-9+.#\s_-]", " ", (text or "").lower())
    return re.sub(r"[\s_-]+", " ", text).strip()


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens; keeps + . # (C++, .NET, C#), drops stopwords and 1-char tokens."""
    if not text:
        return []
    return [
        token
        for token in normalize_token_text(text).split(" ")
        if len(token) >= 2 and token not in STOPWORDS
    ]


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    a_set, b_set = set(a), set(b)
    if not a_set or not b_set:
        return 0.0
    intersection = len(a_set & b_set)
    union = len(a_set) + len(b_set) - intersection
    return intersection / union if union else 0.0
