"""
Outreach Drafts.

Builds a short recruiting message for a candidate. The deterministic template
is always available; when AI is available the message is generated from the
job, the candidate, an optional evidence claim and optional role context, then
validated. A failed or suspicious generation returns the template.
"""

import json
from typing import Any, Dict, Optional

from talentsonar.config.prompts import OUTREACH_OUTPUT_SPEC, OUTREACH_SYSTEM_PROMPT
from talentsonar.config.schemas import Candidate, Job, OutreachDraft, utc_now
from talentsonar.services.degraded_mode import DegradedModeService, get_degraded_mode_service
from talentsonar.utils.exceptions import AppError, UpstreamError
from talentsonar.utils.llms import AIService, get_ai_service
from talentsonar.utils.logger import get_logger
from talentsonar.utils.output_validation import validate_generic_output
from talentsonar.utils.prompt_security import (
    build_secure_prompt,
    sanitize_for_prompt,
    sanitize_short,
)

logger = get_logger(__name__)

MAX_SUBJECT_CHARS = 120
MAX_BODY_CHARS = 1200


def safe_text(value: Any, max_len: int) -> str:
    """Trimmed string, cut to max_len with a trailing ellipsis."""
    text = ("" if value is None else str(value)).strip()
    if len(text) > max_len:
        return text[: max_len - 1] + "…"
    return text


def build_deterministic(
    job: Job, candidate: Candidate, evidence_claim: Optional[str] = None
) -> OutreachDraft:
    name = candidate.name.strip()
    first_name = name.split(" ")[0] if name else name

    if evidence_claim and evidence_claim.strip():
        line = evidence_claim.strip()
    elif candidate.skills:
        line = f"Your experience with {' and '.join(candidate.skills[:2])} stood out."
    else:
        line = "Your profile stood out."

    body = "\n".join(
        [
            f"Hi {first_name},",
            "",
            line,
            f"I'm hiring for a {job.title} role and wanted to ask:",
            "",
            "Describe the last time you shipped something similar: what did you build "
            "and what changed because of it?",
            "",
            "If it's relevant, happy to share details and see if timing could make sense.",
            "",
            "Thanks,",
        ]
    )
    return OutreachDraft(
        subject=f"Quick question — {job.title}",
        body=body,
        created_at=utc_now(),
        method="deterministic",
    )


class OutreachService:
    def __init__(
        self,
        ai: Optional[AIService] = None,
        degraded: Optional[DegradedModeService] = None,
    ):
        self.ai = ai or get_ai_service()
        self.degraded = degraded or get_degraded_mode_service()

    def build(
        self,
        job: Job,
        candidate: Candidate,
        evidence_claim: Optional[str] = None,
        role_context: Optional[Dict[str, Any]] = None,
    ) -> OutreachDraft:
        fallback = build_deterministic(job, candidate, evidence_claim)
        if not self.ai.is_available():
            return fallback

        evidence_text = safe_text(evidence_claim, 1400) or "N/A"
        context_text = (
            safe_text(json.dumps(role_context, default=str), 900) if role_context else "N/A"
        )
        prompt = build_secure_prompt(
            "Draft outreach for the candidate below.",
            [
                ("JOB", f"Title: {sanitize_short(job.title)}\nLocation: {sanitize_short(job.location)}"),
                (
                    "CANDIDATE",
                    f"Name: {sanitize_short(candidate.name)}\n"
                    f"Skills: {sanitize_short(', '.join(candidate.skills[:8]), 300)}",
                ),
                ("EVIDENCE", sanitize_for_prompt(evidence_text, 1400)),
                ("ROLE_CONTEXT", sanitize_for_prompt(context_text, 900) or "N/A"),
            ],
            OUTREACH_OUTPUT_SPEC,
        )

        try:
            data = self.ai.generate_json(OUTREACH_SYSTEM_PROMPT, prompt, max_tokens=500)
        except AppError as e:
            self._report(e, job, candidate)
            return fallback

        validation = validate_generic_output(data)
        if not validation.valid:
            self._report(
                UpstreamError(
                    "OutreachService",
                    "AI outreach draft failed output validation",
                    details={"issues": validation.messages()},
                ),
                job,
                candidate,
            )
            return fallback

        self.degraded.clear("outreach")
        return OutreachDraft(
            subject=safe_text(data.get("subject"), MAX_SUBJECT_CHARS) or fallback.subject,
            body=safe_text(data.get("body"), MAX_BODY_CHARS) or fallback.body,
            created_at=utc_now(),
            method="ai",
        )

    def _report(self, error: AppError, job: Job, candidate: Candidate) -> None:
        self.degraded.report(
            "outreach",
            error,
            "Outreach draft uses the standard template instead of a tailored message.",
            candidate_id=candidate.id,
            job_id=job.id,
        )


_outreach_service: Optional[OutreachService] = None


def get_outreach_service() -> OutreachService:
    global _outreach_service
    if _outreach_service is None:
        _outreach_service = OutreachService()
    return _outreach_service
