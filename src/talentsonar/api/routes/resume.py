"""
Resume API Routes.

Routes for parsing resume text and uploaded resume files.
"""

from fastapi import APIRouter, File, UploadFile

from talentsonar.config.request_schemas import ResumeParseRequest
from talentsonar.services.resume_parser import ResumeParseOutcome, get_resume_parser_service
from talentsonar.utils.exceptions import InvalidInputError
from talentsonar.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/resume", tags=["resume"])

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
TEXT_PREVIEW_CHARS = 500


def _outcome_body(outcome: ResumeParseOutcome) -> dict:
    return {
        "ok": True,
        "parsed_resume": outcome.parsed.model_dump(),
        "warnings": outcome.warnings,
        "injection_warning": outcome.injection_warning,
        "model": outcome.model,
    }


@router.post("/parse")
def parse_resume(payload: ResumeParseRequest) -> dict:
    """Parse resume text into structured fields.

    Raises:
        NOT_CONFIGURED (503) without AI, RATE_LIMITED (429), UPSTREAM (502).
    """
    outcome = get_resume_parser_service().parse(payload.text)
    return _outcome_body(outcome)


@router.post("/upload")
def upload_resume(file: UploadFile = File(...)) -> dict:
    """Extract text from an uploaded PDF/DOCX/HTML/text resume and parse it."""
    data = file.file.read()
    if len(data) > MAX_UPLOAD_BYTES:
        raise InvalidInputError(
            "ResumeUpload",
            f"File is too large ({len(data)} bytes); the limit is {MAX_UPLOAD_BYTES} bytes.",
        )

    filename = file.filename or "resume"
    result = get_resume_parser_service().parse_file(
        data, filename, file.content_type or ""
    )
    logger.info(
        "Parsed uploaded resume",
        extra={
            "extra_fields": {
                "upload_filename": filename,
                "bytes": result.extracted.bytes,
                "model": result.outcome.model,
            }
        },
    )
    return {
        **_outcome_body(result.outcome),
        "file": {
            "filename": filename,
            "sha256": result.extracted.sha256,
            "bytes": result.extracted.bytes,
            "text_chars": len(result.extracted.text),
            "text_preview": result.extracted.text[:TEXT_PREVIEW_CHARS],
        },
    }
