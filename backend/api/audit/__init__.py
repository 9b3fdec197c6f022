"""Blueprint aggregation for profile audit endpoints."""
from __future__ import annotations

from flask import Blueprint

from .analyze import analyze_bp
from .sessions import sessions_bp

audit_bp = Blueprint("audit", __name__)

# Register individual blueprints under the audit namespace
audit_bp.register_blueprint(analyze_bp)
audit_bp.register_blueprint(sessions_bp)

__all__ = ["audit_bp"]
