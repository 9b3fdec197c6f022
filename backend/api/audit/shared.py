"""Shared state, auditor factory and error mapping for the audit API."""
from __future__ import annotations

import logging
from typing import Tuple

from flask import Response, jsonify

from audit.analyzer import ProfileAuditor
from core.errors import (
    AnalysisInProgressError,
    AnalysisParseError,
    AuditError,
    ConfigurationError,
    ExportFailedError,
    ExportInProgressError,
    InvalidInputError,
    InvalidTransitionError,
    ProfileNotFoundError,
    ProviderUnavailableError,
    SchemaViolationError,
)
from services.audit_session_service import AuditSessionService

logger = logging.getLogger(__name__)

# In-memory sessions, one per browser tab
session_service = AuditSessionService()

_STATUS_BY_ERROR = (
    (InvalidInputError, 400),
    (ProfileNotFoundError, 404),
    (AnalysisInProgressError, 409),
    (ExportInProgressError, 409),
    (InvalidTransitionError, 409),
    (AnalysisParseError, 502),
    (SchemaViolationError, 502),
    (ProviderUnavailableError, 502),
    (ExportFailedError, 502),
    (ConfigurationError, 503),
)


def build_auditor() -> ProfileAuditor:
    """Create the auditor for a request (settings are re-read from the environment)."""
    return ProfileAuditor()


def error_response(exc: AuditError) -> Tuple[Response, int]:
    status = next((code for kind, code in _STATUS_BY_ERROR if isinstance(exc, kind)), 500)
    return jsonify({"error": exc.user_message, "kind": type(exc).__name__}), status
