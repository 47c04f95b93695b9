# ---------- SETTINGS ----------

"""
Runtime configuration for the Talent Sonar backend.

All values come from environment variables (optionally loaded from a .env file).
Nothing here is required: without OPENAI_API_KEY the backend runs in no-AI mode,
and without DYNAMODB_TABLE_NAME pipeline events are kept in memory.
"""

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes")


def _env_list(name: str, default: str) -> List[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# ----- LLM -----

OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "").strip()
OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
# Tried in order by the resume parser when a model fails
OPENAI_FALLBACK_MODELS = _env_list(
    "OPENAI_FALLBACK_MODELS", "gpt-4o-mini,gpt-4.1-mini"
)
OPENAI_EMBEDDING_MODEL = os.environ.get(
    "OPENAI_EMBEDDING_MODEL", "text-embedding-3-small"
)
DISABLE_AI = _env_bool("DISABLE_AI")

# Local request gate in front of the LLM provider
LLM_RATE_LIMIT_TOKENS = int(os.environ.get("LLM_RATE_LIMIT_TOKENS", "20"))
LLM_RATE_LIMIT_WINDOW_SECONDS = float(
    os.environ.get("LLM_RATE_LIMIT_WINDOW_SECONDS", "60")
)
LLM_GATE_MAX_WAIT_SECONDS = float(os.environ.get("LLM_GATE_MAX_WAIT_SECONDS", "5"))

# ----- CACHES -----

TEXT_CACHE_TTL_SECONDS = float(os.environ.get("TEXT_CACHE_TTL_SECONDS", "300"))
EMBEDDING_CACHE_TTL_SECONDS = float(
    os.environ.get("EMBEDDING_CACHE_TTL_SECONDS", "1200")
)
RESUME_CACHE_TTL_SECONDS = float(os.environ.get("RESUME_CACHE_TTL_SECONDS", "600"))

# ----- STORAGE -----

DYNAMODB_TABLE_NAME = os.environ.get("DYNAMODB_TABLE_NAME", "").strip()

# ----- API -----

FRONTEND_URL = os.environ.get("FRONTEND_URL", "")
