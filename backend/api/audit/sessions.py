"""Session endpoints driving the audit state machine."""
from __future__ import annotations

import logging
import time

from flask import Blueprint, jsonify, request

from audit.state import ReportTab
from core.errors import AuditError
from services.audit_session_service import SessionNotFoundError

from .shared import build_auditor, error_response, session_service

logger = logging.getLogger(__name__)

sessions_bp = Blueprint("audit_sessions", __name__)


def _session_missing(session_id: str):
    logger.warning("Unknown audit session", extra={"operation": "session_lookup", "session_id": session_id})
    return jsonify({"error": "Session not found"}), 404


@sessions_bp.route("/audit/sessions", methods=["POST"])
def create_session():
    session_id = session_service.create_session()
    state = session_service.get_state(session_id)
    return jsonify({"session_id": session_id, "session": state.to_dict()}), 201


@sessions_bp.route("/audit/sessions/<session_id>", methods=["GET"])
def get_session(session_id: str):
    try:
        state = session_service.get_state(session_id)
    except SessionNotFoundError:
        return _session_missing(session_id)
    return jsonify({"session_id": session_id, "session": state.to_dict()})


@sessions_bp.route("/audit/sessions/<session_id>", methods=["DELETE"])
def delete_session(session_id: str):
    try:
        session_service.delete_session(session_id)
    except SessionNotFoundError:
        return _session_missing(session_id)
    except AuditError as exc:
        return error_response(exc)
    return "", 204


@sessions_bp.route("/audit/sessions/<session_id>/analyze", methods=["POST"])
def analyze_in_session(session_id: str):
    """Run an audit inside a session; rejected with 409 while one is in flight."""
    payload = request.get_json(silent=True) or {}
    user_input = payload.get("input")
    if not isinstance(user_input, str):
        return jsonify({"error": "input is required"}), 400

    try:
        start_time = time.perf_counter()
        session_service.run_analysis(session_id, user_input, build_auditor())
        logger.info(
            "Session audit completed",
            extra={
                "operation": "session_analyze",
                "session_id": session_id,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )
    except SessionNotFoundError:
        return _session_missing(session_id)
    except AuditError as exc:
        logger.warning(
            "Session audit failed",
            extra={
                "operation": "session_analyze",
                "session_id": session_id,
                "error_kind": type(exc).__name__,
                "error": str(exc),
            },
        )
        return error_response(exc)

    return jsonify({"session_id": session_id, "session": session_service.get_state(session_id).to_dict()})


@sessions_bp.route("/audit/sessions/<session_id>/retry", methods=["POST"])
def retry_session(session_id: str):
    try:
        state = session_service.retry(session_id)
    except SessionNotFoundError:
        return _session_missing(session_id)
    except AuditError as exc:
        return error_response(exc)
    return jsonify({"session_id": session_id, "session": state.to_dict()})


@sessions_bp.route("/audit/sessions/<session_id>/tab", methods=["POST"])
def select_tab(session_id: str):
    payload = request.get_json(silent=True) or {}
    tab = payload.get("tab")
    if tab not in {item.value for item in ReportTab}:
        return jsonify({"error": f"tab must be one of: {', '.join(item.value for item in ReportTab)}"}), 400

    try:
        state = session_service.select_tab(session_id, tab)
    except SessionNotFoundError:
        return _session_missing(session_id)
    except AuditError as exc:
        return error_response(exc)
    return jsonify({"session_id": session_id, "session": state.to_dict()})


@sessions_bp.route("/audit/sessions/<session_id>/export", methods=["POST"])
def export_session(session_id: str):
    """Hand the completed report to the browser-side PDF renderer."""

    def _render(result, filename):
        return {"filename": filename, "report": result.to_json_dict()}

    try:
        rendered = session_service.export_report(session_id, _render)
    except SessionNotFoundError:
        return _session_missing(session_id)
    except AuditError as exc:
        return error_response(exc)
    return jsonify(rendered)
