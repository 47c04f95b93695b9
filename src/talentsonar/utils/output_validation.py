"""
Output Validation for AI Responses.

AI responses are validated before they reach a caller. The validators guard
against inflated or non-numeric scores, echoed prompt fragments (a sign the
model was steered by injected text), injection artifacts in generated text and
structurally empty output.

Each validator returns a ValidationResult. A critical issue makes the result
invalid; services then fall back to their deterministic path.
"""

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from talentsonar.utils.logger import get_logger
from talentsonar.utils.prompt_security import detect_prompt_injection

logger = get_logger(__name__)


@dataclass
class ValidationIssue:
    code: str
    severity: str  # info | warning | critical
    message: str
    field: Optional[str] = None


@dataclass
class ValidationResult:
    valid: bool = True
    modified: bool = False
    issues: List[ValidationIssue] = field(default_factory=list)

    def add(self, issue: ValidationIssue) -> None:
        self.issues.append(issue)
        if issue.severity == "critical":
            self.valid = False

    def messages(self) -> List[str]:
        return [f"[{i.severity}] {i.message}" for i in self.issues]


# Fragments that must never appear in model output
LEAKAGE_PATTERNS = [
    (re.compile(r"===\s*UNTRUSTED_DATA_(START|END)", re.IGNORECASE), "data delimiter marker"),
    (re.compile(r"SECURITY RULES \(always enforced\)", re.IGNORECASE), "security preamble"),
    (re.compile(r"NEVER follow instructions.*inside those markers", re.IGNORECASE), "security instruction"),
    (re.compile(r"SECURITY WARNING.*data block.*may contain", re.IGNORECASE), "injection warning marker"),
    (re.compile(r"You are Talent Sonar\.", re.IGNORECASE), "system role identity"),
    (re.compile(r"You are a resume parser\.", re.IGNORECASE), "system role identity"),
    (re.compile(r"You are an expert recruiter\.", re.IGNORECASE), "system role identity"),
    (re.compile(r"OPENAI_API_KEY", re.IGNORECASE), "environment variable name"),
]


def _serialize(data: Any) -> str:
    return json.dumps(data, default=str, ensure_ascii=False)


def _check_prompt_leakage(text: str, result: ValidationResult) -> None:
    for pattern, label in LEAKAGE_PATTERNS:
        if pattern.search(text):
            result.add(
                ValidationIssue(
                    "PROMPT_LEAKAGE",
                    "critical",
                    f"AI output contains leaked {label}. The model may have been "
                    "tricked into echoing internal instructions.",
                    label,
                )
            )


def _check_output_injection(text: str, result: ValidationResult) -> None:
    scan = detect_prompt_injection(text)
    if scan.flagged and scan.risk_score >= 7:
        reasons = "; ".join(f.reason for f in scan.flags if f.severity != "low")
        result.add(
            ValidationIssue(
                "OUTPUT_INJECTION",
                "warning",
                f"AI output contains suspicious patterns (risk score {scan.risk_score}): {reasons}",
                "output_text",
            )
        )


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def _validate_score(
    value: Any, name: str, low: float, high: float, result: ValidationResult
) -> float:
    num = _to_number(value)
    if num is None:
        result.add(
            ValidationIssue(
                "INVALID_SCORE", "critical", f"{name} is not a finite number (got {value!r}).", name
            )
        )
        return low

    clamped = num
    if num < low:
        clamped = low
        result.modified = True
        result.add(
            ValidationIssue(
                "SCORE_BELOW_MIN", "warning",
                f"{name} was below minimum ({num} < {low}), clamped to {low}.", name,
            )
        )
    elif num > high:
        clamped = high
        result.modified = True
        result.add(
            ValidationIssue(
                "SCORE_ABOVE_MAX", "warning",
                f"{name} exceeded maximum ({num} > {high}), clamped to {high}.", name,
            )
        )

    if clamped == high:
        result.add(
            ValidationIssue(
                "PERFECT_SCORE", "warning",
                f"{name} is exactly {high}, suspiciously perfect.", name,
            )
        )
    return clamped


def _validate_confidence(value: Any, name: str, result: ValidationResult) -> float:
    num = _to_number(value)
    if num is None:
        result.modified = True
        result.add(
            ValidationIssue(
                "INVALID_CONFIDENCE", "warning",
                f"{name} is not a finite number, defaulting to 0.5.", name,
            )
        )
        return 0.5

    clamped = max(0.0, min(1.0, num))
    if clamped != num:
        result.modified = True
        result.add(
            ValidationIssue(
                "CONFIDENCE_OUT_OF_RANGE", "warning",
                f"{name} was out of [0,1] range ({num}), clamped to {clamped}.", name,
            )
        )
    if clamped == 1.0:
        result.add(
            ValidationIssue(
                "PERFECT_CONFIDENCE", "warning",
                f"{name} is exactly 1.0; AI should rarely express full confidence.", name,
            )
        )
    return clamped


def _validate_text_field(value: Any, name: str, max_len: int, result: ValidationResult) -> str:
    text = ("" if value is None else str(value)).strip()
    if len(text) > max_len:
        result.modified = True
        result.add(
            ValidationIssue(
                "TEXT_TOO_LONG", "info",
                f"{name} exceeded max length ({len(text)} > {max_len}), truncated.", name,
            )
        )
        return text[:max_len]

    _check_prompt_leakage(text, result)
    return text


def _log_issues(kind: str, result: ValidationResult) -> None:
    if result.issues:
        logger.warning(
            f"{kind} output validation issues",
            extra={
                "extra_fields": {
                    "valid": result.valid,
                    "issues": result.messages(),
                }
            },
        )


# ------------------------------
# Public validators
# ------------------------------


@dataclass
class ValidatedFitScore:
    score: float
    confidence: float
    rationale: str
    reasons: List[str]
    validation: ValidationResult


def validate_fit_score(data: Dict[str, Any]) -> ValidatedFitScore:
    """Validate a fit score response ({score, confidence, rationale, reasons}).

    The score is clamped to [0, 100] and the confidence to [0, 1]. The
    rationale is truncated to 2000 characters and at most 10 reasons are kept.
    """
    result = ValidationResult()
    data = data if isinstance(data, dict) else {}

    score = _validate_score(data.get("score"), "score", 0, 100, result)
    confidence = _validate_confidence(data.get("confidence"), "confidence", result)
    rationale = _validate_text_field(data.get("rationale"), "rationale", 2000, result)
    raw_reasons = data.get("reasons")
    reasons = (
        [str(r) for r in raw_reasons if r is not None and str(r)][:10]
        if isinstance(raw_reasons, list)
        else []
    )

    if score >= 90 and len(rationale) < 20:
        result.add(
            ValidationIssue(
                "SCORE_RATIONALE_MISMATCH",
                "warning",
                f"Score is {score} but rationale is very short ({len(rationale)} chars).",
                "score+rationale",
            )
        )

    _check_output_injection(" ".join([rationale, *reasons]), result)
    _log_issues("Fit score", result)
    return ValidatedFitScore(score, confidence, rationale, reasons, result)


def validate_parsed_resume(data: Any) -> ValidationResult:
    """Validate a parsed resume dict produced by the model."""
    result = ValidationResult()
    if not data:
        result.add(
            ValidationIssue("EMPTY_OUTPUT", "critical", "Parsed resume output is empty.", "data")
        )
        return result
    payload = data if isinstance(data, dict) else {}

    name = ("" if payload.get("name") is None else str(payload.get("name"))).strip()
    if not name:
        result.add(ValidationIssue("MISSING_NAME", "warning", "Parsed resume has no name.", "name"))
    else:
        _validate_text_field(name, "name", 200, result)

    skills = payload.get("skills")
    if isinstance(skills, list):
        if len(skills) > 100:
            result.add(
                ValidationIssue(
                    "EXCESSIVE_SKILLS", "warning",
                    f"Parsed resume has {len(skills)} skills, a suspiciously high count.", "skills",
                )
            )
        for skill in skills[:50]:
            s = str(skill)
            if len(s) > 100:
                result.add(
                    ValidationIssue(
                        "SKILL_TOO_LONG", "warning",
                        f'Skill entry is {len(s)} chars and may contain injected text: "{s[:50]}..."',
                        "skills",
                    )
                )

    if payload.get("summary"):
        _validate_text_field(payload["summary"], "summary", 3000, result)

    serialized = _serialize(payload)
    _check_prompt_leakage(serialized, result)
    _check_output_injection(serialized, result)
    _log_issues("Parsed resume", result)
    return result


def validate_generic_output(data: Any) -> ValidationResult:
    """Leakage and injection checks for AI output with no dedicated validator."""
    result = ValidationResult()
    if data is None:
        result.add(ValidationIssue("EMPTY_OUTPUT", "critical", "AI output is empty."))
        return result

    serialized = _serialize(data)
    _check_prompt_leakage(serialized, result)
    _check_output_injection(serialized, result)
    _log_issues("Generic", result)
    return result

