"""
Resume Parsing.

Converts resume text (or an uploaded resume file) into a ParsedResume using the
LLM. Unlike scoring and outreach there is no deterministic fallback: without
AI the parser reports NOT_CONFIGURED.

Models from OPENAI_FALLBACK_MODELS are tried in order. A rate limit stops the
chain immediately (the next model shares the same quota); any other failure
moves on to the next model. Results are cached for RESUME_CACHE_TTL_SECONDS,
keyed by the first 2 KB of the text.
"""

from typing import List, NamedTuple, Optional, Sequence

from pydantic import ValidationError

from talentsonar.config import settings
from talentsonar.config.prompts import RESUME_OUTPUT_SPEC, RESUME_SYSTEM_PROMPT
from talentsonar.config.schemas import ParsedResume
from talentsonar.utils.cache import TTLCache, content_signature
from talentsonar.utils.exceptions import (
    AppError,
    InvalidInputError,
    NotConfiguredError,
    RateLimitedError,
    UpstreamError,
)
from talentsonar.utils.llms import AIService, get_ai_service
from talentsonar.utils.logger import get_logger, log_performance
from talentsonar.utils.output_validation import validate_parsed_resume
from talentsonar.utils.prompt_security import (
    build_secure_prompt,
    get_injection_warning,
    sanitize_for_prompt,
)
from talentsonar.utils.text_extract import ExtractedText, extract_text_from_file

logger = get_logger(__name__)

CACHE_KEY_CHARS = 2048
MAX_PROMPT_CHARS = 8000


class ResumeParseOutcome(NamedTuple):
    parsed: ParsedResume
    warnings: List[str]
    injection_warning: Optional[str]
    model: str


class FileParseOutcome(NamedTuple):
    extracted: ExtractedText
    outcome: ResumeParseOutcome


class ResumeParserService:
    SERVICE = "ResumeParser"

    def __init__(
        self,
        ai: Optional[AIService] = None,
        models: Optional[Sequence[str]] = None,
    ):
        self.ai = ai or get_ai_service()
        self.models = list(models or settings.OPENAI_FALLBACK_MODELS or [self.ai.model])
        self.cache = TTLCache(settings.RESUME_CACHE_TTL_SECONDS)

    def parse(self, text: str) -> ResumeParseOutcome:
        """Parse resume text.

        Raises:
            InvalidInputError: Blank text.
            NotConfiguredError: AI unavailable.
            RateLimitedError: Provider or local rate limit; not retried.
            UpstreamError: Every configured model failed.
        """
        if not text or not text.strip():
            raise InvalidInputError(self.SERVICE, "Resume text is empty.")
        if not self.ai.is_available():
            raise NotConfiguredError(
                self.SERVICE, "Resume parsing requires OPENAI_API_KEY"
            )

        key = content_signature("parse", text[:CACHE_KEY_CHARS])
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        prompt = build_secure_prompt(
            "Parse the resume below.",
            [("CANDIDATE_RESUME", sanitize_for_prompt(text, MAX_PROMPT_CHARS))],
            RESUME_OUTPUT_SPEC,
        )
        injection_warning = get_injection_warning(text)

        for model in self.models:
            try:
                with log_performance("resume_parse", model=model):
                    data = self.ai.generate_json(
                        RESUME_SYSTEM_PROMPT, prompt, max_tokens=1500, model=model
                    )
                parsed = ParsedResume.model_validate(data)
            except RateLimitedError:
                raise
            except (AppError, ValidationError) as e:
                logger.warning(
                    f"Resume parse failed with model {model}; trying next model",
                    extra={"extra_fields": {"model": model, "error": str(e)}},
                )
                continue

            validation = validate_parsed_resume(data)
            outcome = ResumeParseOutcome(
                parsed=parsed,
                warnings=[i.message for i in validation.issues],
                injection_warning=injection_warning,
                model=model,
            )
            self.cache.set(key, outcome)
            return outcome

        raise UpstreamError(
            self.SERVICE,
            "All configured models failed while parsing resume.",
            details={"models_tried": self.models},
        )

    def parse_file(self, data: bytes, filename: str, mime_type: str = "") -> FileParseOutcome:
        """Extract text from an uploaded file, then parse it."""
        extracted = extract_text_from_file(data, filename, mime_type)
        if not extracted.text:
            raise InvalidInputError(
                self.SERVICE, f"No text could be extracted from '{filename}'."
            )
        return FileParseOutcome(extracted, self.parse(extracted.text))


_resume_parser_service: Optional[ResumeParserService] = None


def get_resume_parser_service() -> ResumeParserService:
    global _resume_parser_service
    if _resume_parser_service is None:
        _resume_parser_service = ResumeParserService()
    return _resume_parser_service
