"""
LLM Utilities - OpenAI API Integration and JSON Extraction.

This module is the single gateway to the LLM provider. Every service that
needs generated text, structured JSON or embeddings goes through AIService.

Key pieces:
    - AIService.generate_text: chat completion with caching, local request
      gate, provider backoff and retry on transient failures
    - AIService.generate_json: same, parsed into a dict
    - AIService.embed_text: embeddings with a longer-lived cache
    - extract_json: pulls a JSON object out of text that may carry markdown
      fences or commentary

Unlike a hard dependency, the provider is optional: without OPENAI_API_KEY (or
with DISABLE_AI=true) `is_available()` is False and every call raises
NotConfiguredError. Callers are expected to check availability and fall back
to their deterministic path.

Environment Variables:
    OPENAI_API_KEY: OpenAI API key (optional)
    OPENAI_MODEL: Default chat model
    OPENAI_EMBEDDING_MODEL: Embedding model
    DISABLE_AI: Force no-AI mode
"""

import json
import re
import time
from typing import Any, Dict, List, Optional

from openai import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    OpenAI,
    RateLimitError,
)

from talentsonar.config import settings
from talentsonar.utils.cache import TTLCache, content_signature
from talentsonar.utils.exceptions import (
    NotConfiguredError,
    RateLimitedError,
    UpstreamError,
)
from talentsonar.utils.logger import get_logger
from talentsonar.utils.rate_limiter import (
    BackoffTracker,
    RequestGate,
    parse_retry_after_seconds,
)

logger = get_logger(__name__)

DEFAULT_RATE_LIMIT_BACKOFF_SECONDS = 60.0

_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)


class AIService:
    """Gateway to the LLM provider.

    Args:
        api_key: Provider key. Defaults to OPENAI_API_KEY.
        model: Default chat model.
        embedding_model: Embedding model.
        disabled: Force no-AI mode.
        client: Pre-built OpenAI client (tests pass a MagicMock here).
        gate: Local request gate.
        backoff: Provider backoff tracker.
        retry_delay: Initial delay for transient-error retries (exponential).
        max_retries: Retries for connection errors and timeouts.
    """

    SERVICE = "AIService"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        embedding_model: Optional[str] = None,
        disabled: Optional[bool] = None,
        client: Optional[Any] = None,
        gate: Optional[RequestGate] = None,
        backoff: Optional[BackoffTracker] = None,
        retry_delay: float = 1.0,
        max_retries: int = 3,
    ):
        self.model = model or settings.OPENAI_MODEL
        self.embedding_model = embedding_model or settings.OPENAI_EMBEDDING_MODEL
        self.retry_delay = retry_delay
        self.max_retries = max_retries
        self.gate = gate or RequestGate(
            tokens=settings.LLM_RATE_LIMIT_TOKENS,
            window_seconds=settings.LLM_RATE_LIMIT_WINDOW_SECONDS,
            max_wait_seconds=settings.LLM_GATE_MAX_WAIT_SECONDS,
        )
        self.backoff = backoff or BackoffTracker()
        self.text_cache = TTLCache(settings.TEXT_CACHE_TTL_SECONDS)
        self.embed_cache = TTLCache(settings.EMBEDDING_CACHE_TTL_SECONDS)

        disabled = settings.DISABLE_AI if disabled is None else disabled
        key = api_key if api_key is not None else settings.OPENAI_API_KEY

        self.client = None
        if disabled:
            logger.warning("AI disabled via DISABLE_AI=true; running in no-AI mode")
        elif client is not None:
            self.client = client
        elif key:
            self.client = OpenAI(api_key=key)
        else:
            logger.warning("No OPENAI_API_KEY found; running in no-AI mode")

    def is_available(self) -> bool:
        return self.client is not None

    # ------------------------------
    # Public interface
    # ------------------------------

    def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 800,
        model: Optional[str] = None,
        json_mode: bool = False,
    ) -> str:
        """Generate text from a system and user prompt.

        Args:
            system_prompt: Trusted instructions.
            user_prompt: Task and (sanitized, delimited) data.
            max_tokens: Response token cap.
            model: Override the default chat model.
            json_mode: Ask the provider for a JSON object response.

        Returns:
            The response text, stripped.

        Raises:
            NotConfiguredError: AI is unavailable.
            RateLimitedError: Local gate exhausted or provider backoff active.
            UpstreamError: Provider failure or malformed response.
        """
        client = self._require_client()
        model = model or self.model

        cache_key = content_signature(model, json_mode, system_prompt, user_prompt)
        cached = self.text_cache.get(cache_key)
        if cached is not None:
            logger.debug("LLM text cache hit", extra={"extra_fields": {"model": model}})
            return cached

        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": 0.2,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = self._call_with_retries(
            lambda: client.chat.completions.create(**kwargs), operation="chat", model=model
        )

        choices = getattr(response, "choices", None)
        if not choices:
            raise UpstreamError(
                self.SERVICE, "Provider returned no choices", details={"model": model}
            )
        message = getattr(choices[0], "message", None)
        text = getattr(message, "content", None)
        if text is None:
            raise UpstreamError(
                self.SERVICE, "Provider returned empty content", details={"model": model}
            )

        text = text.strip()
        logger.debug("LLM response: %s", text[:500])
        self.text_cache.set(cache_key, text)
        return text

    def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 800,
        model: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Generate and parse a JSON object.

        The prompts must instruct the model to return only a JSON object.

        Raises:
            UpstreamError: The response holds no parseable JSON object.
            (plus everything generate_text raises)
        """
        text = self.generate_text(
            system_prompt, user_prompt, max_tokens=max_tokens, model=model, json_mode=True
        )
        json_str = extract_json(text)
        if json_str is None:
            raise UpstreamError(
                self.SERVICE,
                "No JSON object found in LLM response",
                details={"model": model or self.model},
            )
        try:
            parsed = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise UpstreamError(
                self.SERVICE,
                f"LLM returned invalid JSON: {e}",
                details={"model": model or self.model},
            ) from e
        if not isinstance(parsed, dict):
            raise UpstreamError(
                self.SERVICE, "LLM JSON response is not an object", details={"model": model or self.model}
            )
        return parsed

    def embed_text(self, text: str) -> List[float]:
        """Embed text for similarity search.

        Raises:
            NotConfiguredError, RateLimitedError, UpstreamError
        """
        client = self._require_client()
        cache_key = content_signature(self.embedding_model, text)
        cached = self.embed_cache.get(cache_key)
        if cached is not None:
            return cached

        response = self._call_with_retries(
            lambda: client.embeddings.create(model=self.embedding_model, input=text),
            operation="embedding",
            model=self.embedding_model,
        )

        data = getattr(response, "data", None)
        values = getattr(data[0], "embedding", None) if data else None
        if not values:
            raise UpstreamError(
                self.SERVICE,
                "No embedding values returned",
                details={"model": self.embedding_model},
            )

        values = [float(v) for v in values]
        self.embed_cache.set(cache_key, values)
        return values

    # ------------------------------
    # Internal functions
    # ------------------------------

    def _require_client(self) -> Any:
        if self.client is None:
            raise NotConfiguredError(
                self.SERVICE, "Missing OPENAI_API_KEY (or DISABLE_AI is set)"
            )
        return self.client

    def _call_with_retries(self, call, operation: str, model: str) -> Any:
        """Run a provider call behind the gate and backoff, retrying transient errors.

        Connection errors and timeouts are retried with exponential backoff:
        retry_delay, retry_delay*2, retry_delay*4, ... Provider rate limits are
        not retried; they set the backoff deadline and raise RateLimitedError.
        """
        if not self.backoff.can_proceed():
            remaining = self.backoff.delay_remaining
            raise RateLimitedError(
                self.SERVICE,
                f"AI temporarily rate-limited; retry in {round(remaining)}s",
                details={"model": model, "operation": operation},
                retry_after_ms=int(remaining * 1000),
            )

        self.gate.acquire()

        retryable_errors = (APIConnectionError, APITimeoutError)
        for attempt in range(self.max_retries + 1):
            try:
                return call()

            except RateLimitError as e:
                retry_after = parse_retry_after_seconds(e) or DEFAULT_RATE_LIMIT_BACKOFF_SECONDS
                self.backoff.set_backoff(retry_after)
                logger.warning(
                    "LLM provider rate limit hit",
                    extra={
                        "extra_fields": {
                            "model": model,
                            "operation": operation,
                            "retry_after_seconds": retry_after,
                        }
                    },
                )
                raise RateLimitedError(
                    self.SERVICE,
                    f"AI rate-limited; retry after {round(retry_after)}s",
                    details={"model": model, "operation": operation},
                    retry_after_ms=int(retry_after * 1000),
                ) from e

            except retryable_errors as e:
                if attempt < self.max_retries:
                    delay = self.retry_delay * (2**attempt)
                    logger.warning(
                        f"LLM call failed (attempt {attempt + 1}/{self.max_retries + 1}): "
                        f"{type(e).__name__}. Retrying in {delay:.1f}s..."
                    )
                    time.sleep(delay)
                    continue
                logger.error(
                    f"LLM call failed after {self.max_retries + 1} attempts: {type(e).__name__}"
                )
                raise UpstreamError(
                    self.SERVICE,
                    f"{operation} failed after retries: {type(e).__name__}",
                    details={"model": model, "operation": operation},
                ) from e

            except APIError as e:
                # Non-retryable provider errors (auth, bad request, ...)
                logger.error(
                    f"LLM call failed with non-retryable error: {type(e).__name__}: {str(e)}"
                )
                raise UpstreamError(
                    self.SERVICE,
                    f"{operation} failed: {type(e).__name__}",
                    details={"model": model, "operation": operation},
                ) from e


def extract_json(text: str) -> Optional[str]:
    """Extract the first JSON object from LLM response text.

    Handles markdown code fences and leading/trailing commentary by stripping
    fences and balancing braces from the first '{'. Braces inside string
    literals are ignored.

    Args:
        text: Raw LLM response text.

    Returns:
        The JSON object substring, or None if no balanced object is found.
        The result is not validated; parse it with json.loads().

    Example:
        Input: "Here you go: ```json {\"score\": 80} ```"
        Output: '{"score": 80}'
    """
    if not text:
        return None
    cleaned = _FENCE_RE.sub("", text)

    start = cleaned.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(cleaned)):
        ch = cleaned[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return cleaned[start : i + 1]

    return None


_ai_service: Optional[AIService] = None


def get_ai_service() -> AIService:
    """Process-wide AIService, created on first use."""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service
