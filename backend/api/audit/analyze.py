"""One-shot profile audit endpoint."""
from __future__ import annotations

import asyncio
import logging
import time

from flask import Blueprint, jsonify, request

from audit.handles import normalize_handle
from core.errors import AuditError

from .shared import build_auditor, error_response

logger = logging.getLogger(__name__)

analyze_bp = Blueprint("audit_analyze", __name__)


@analyze_bp.route("/audit", methods=["POST"])
def analyze_profile():
    """Run a single audit for the submitted handle or profile URL."""
    payload = request.get_json(silent=True) or {}
    user_input = payload.get("input")

    if not isinstance(user_input, str) or not normalize_handle(user_input):
        logger.warning("input missing from audit request", extra={"operation": "audit_request"})
        return jsonify({"error": "input is required"}), 400

    handle = normalize_handle(user_input)
    try:
        logger.info("Audit requested", extra={"operation": "audit_request", "handle": handle})
        start_time = time.perf_counter()
        result = asyncio.run(build_auditor().analyze(user_input))
        logger.info(
            "Audit request completed",
            extra={
                "operation": "audit_request",
                "handle": handle,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )
        return jsonify(result.to_json_dict())
    except AuditError as exc:
        logger.warning(
            "Audit request failed",
            extra={
                "operation": "audit_request_error",
                "handle": handle,
                "error_kind": type(exc).__name__,
                "error": str(exc),
            },
        )
        return error_response(exc)
