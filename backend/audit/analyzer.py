"""Profile audit request builder and response validator."""

from __future__ import annotations

import logging
import time
import warnings
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from audit.handles import AnalysisRequest, normalize_handle
from audit.models import EXPECTED_COMPETITORS, NOT_FOUND_SENTINEL, AnalysisResult, AuditPayload
from audit.prompts import PROMPT_VERSION, render_audit_prompt
from audit.schema import AUDIT_RESPONSE_SCHEMA
from audit.sources import apply_source_fallback, extract_sources
from audit.state import AuditStatus
from core.config import Settings
from core.errors import (
    AnalysisParseError,
    AuditError,
    IdentityMismatchWarning,
    InvalidInputError,
    ProfileNotFoundError,
    SchemaViolationError,
)
from core.gemini_client import GeminiClient

logger = logging.getLogger(__name__)

StageCallback = Callable[[AuditStatus], None]


@dataclass(frozen=True, slots=True)
class ParseOutcome:
    """Either a validated payload or the error explaining why there is none."""

    payload: Optional[AuditPayload] = None
    error: Optional[AuditError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> AuditPayload:
        if self.error is not None:
            raise self.error
        assert self.payload is not None
        return self.payload


def _schema_violation(exc: ValidationError) -> SchemaViolationError:
    problems = []
    missing = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"])
        if error["type"] == "missing":
            missing.append(path)
        problems.append(f"{path}: {error['msg']}")
    return SchemaViolationError(
        "Gemini response does not match the audit schema: " + "; ".join(problems),
        missing_fields=missing,
    )


def _reports_not_found(data: Dict[str, Any]) -> bool:
    basic_info = data.get("basicInfo")
    if not isinstance(basic_info, dict):
        return False
    business_name = basic_info.get("businessName")
    return isinstance(business_name, str) and business_name.strip().casefold() == NOT_FOUND_SENTINEL.casefold()


def validate_payload(raw_text: str, *, handle: str = "") -> ParseOutcome:
    """Parse ``raw_text`` as JSON and validate it against ``AuditPayload``.

    The not-found sentinel in ``basicInfo.businessName`` wins over any other
    problem in the answer, since the model fills the remaining fields with
    placeholders in that case.
    """

    try:
        data = GeminiClient.parse_json_response(raw_text)
    except AnalysisParseError as exc:
        return ParseOutcome(error=exc)

    if _reports_not_found(data):
        return ParseOutcome(error=ProfileNotFoundError(handle))

    try:
        payload = AuditPayload.model_validate(data)
    except ValidationError as exc:
        return ParseOutcome(error=_schema_violation(exc))
    if payload.profile_not_found:
        return ParseOutcome(error=ProfileNotFoundError(handle))
    return ParseOutcome(payload=payload)


class ProfileAuditor:
    """Builds the grounded audit request and turns the answer into an ``AnalysisResult``."""

    def __init__(
        self,
        *,
        gemini_client: Optional[GeminiClient] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.gemini = gemini_client or GeminiClient(settings=self.settings)

    async def analyze(
        self,
        user_input: str,
        *,
        on_stage: Optional[StageCallback] = None,
    ) -> AnalysisResult:
        """Run one audit for ``user_input`` (handle, ``@handle`` or profile URL).

        Raises a subclass of ``AuditError``; nothing is retried and no partial
        result is ever returned.
        """

        request = AnalysisRequest(raw_input=user_input or "")
        if request.is_empty:
            raise InvalidInputError("An Instagram handle or profile URL is required.")
        handle = request.canonical_handle

        prompt = render_audit_prompt(handle)
        log_context: Dict[str, Any] = {
            "handle": handle,
            "prompt_version": PROMPT_VERSION,
        }
        logger.info("Starting profile audit", extra={"operation": "audit_start", **log_context})
        start_time = time.perf_counter()

        if on_stage:
            on_stage(AuditStatus.SEARCHING)
        response = await self.gemini.generate_grounded_json(
            prompt,
            response_schema=AUDIT_RESPONSE_SCHEMA,
        )

        if on_stage:
            on_stage(AuditStatus.ANALYZING)
        outcome = validate_payload(response.raw_text, handle=handle)
        if isinstance(outcome.error, ProfileNotFoundError):
            logger.warning(
                "Gemini reported the profile as not found",
                extra={"operation": "audit_not_found", **log_context},
            )
        elif not outcome.ok:
            logger.error(
                "Gemini audit response rejected",
                extra={
                    "operation": "audit_validate",
                    "error_kind": type(outcome.error).__name__,
                    "error": str(outcome.error),
                    **log_context,
                },
            )
        payload = outcome.unwrap()

        self._check_identity(handle, payload)

        if len(payload.competitors) != EXPECTED_COMPETITORS:
            logger.warning(
                "Unexpected number of competitors",
                extra={
                    "operation": "audit_validate",
                    "count": len(payload.competitors),
                    "expected": EXPECTED_COMPETITORS,
                    **log_context,
                },
            )

        sources = apply_source_fallback(
            extract_sources(response.grounding_chunks),
            handle,
            self.settings.source_fallback,
        )
        result = AnalysisResult(**dict(payload), sources=sources)

        logger.info(
            "Profile audit completed",
            extra={
                "operation": "audit_complete",
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                "sources": len(sources),
                "overall_score": result.diagnosis.overall_score,
                **log_context,
            },
        )
        return result

    @staticmethod
    def _check_identity(handle: str, payload: AuditPayload) -> None:
        returned = normalize_handle(payload.basic_info.handle)
        if returned == handle:
            return
        message = f"Gemini returned profile @{returned or '?'} for requested @{handle}."
        logger.warning(
            "Possible profile mismatch detected",
            extra={
                "operation": "audit_identity_mismatch",
                "handle": handle,
                "returned_handle": returned,
            },
        )
        warnings.warn(message, IdentityMismatchWarning, stacklevel=3)


__all__ = ["ProfileAuditor", "ParseOutcome", "validate_payload"]
