"""Main Flask application"""
import logging
import time

from dotenv import load_dotenv
from flask import Flask, jsonify, request, g
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from api.audit import audit_bp
from core.config import Settings
from core.logging_config import configure_logging

# Load environment variables
load_dotenv()

configure_logging()
logger = logging.getLogger(__name__)


def create_app(settings=None):
    """Create and configure Flask application"""
    settings = settings or Settings.from_env()
    logger.info("Initializing Flask application", extra={"operation": "app_init", "model": settings.model})
    if not settings.gemini_api_key:
        logger.warning(
            "GEMINI_API_KEY is not set; audit requests will fail until it is configured",
            extra={"operation": "app_init"},
        )

    app = Flask(__name__)
    app.json.sort_keys = False

    # Enable CORS for the React front-end
    CORS(app, resources={r"/api/*": {"origins": list(settings.cors_origins)}}, supports_credentials=True)

    # Request timing and tracing
    @app.before_request
    def _req_start():
        g._start = time.time()
        # Pull Cloud Run trace header for GCP log correlation
        trace_header = request.headers.get("X-Cloud-Trace-Context", "")
        g._trace = trace_header.split("/", 1)[0] if trace_header else None

        logging.getLogger("request").info(
            "request_start",
            extra={
                "operation": "request_start",
                "method": request.method,
                "path": request.path,
                "content_length": request.content_length or 0,
                "remote_addr": request.headers.get("X-Forwarded-For", request.remote_addr),
                "user_agent": request.headers.get("User-Agent"),
                "trace": g._trace,
            },
        )

    @app.after_request
    def _req_end(response):
        duration_ms = int((time.time() - getattr(g, "_start", time.time())) * 1000)
        logging.getLogger("request").info(
            "request_end",
            extra={
                "operation": "request_end",
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
                "trace": getattr(g, "_trace", None),
            },
        )
        return response

    @app.errorhandler(Exception)
    def _unhandled(error):
        if isinstance(error, HTTPException):
            status = error.code or 500
            if status < 500:
                return jsonify({"error": error.description or "Bad request"}), status

        logging.getLogger("error").exception(
            "unhandled_exception",
            extra={
                "operation": "unhandled_exception",
                "method": request.method,
                "path": request.path,
                "trace": getattr(g, "_trace", None),
            },
        )
        return jsonify({"error": "Internal server error"}), 500

    app.register_blueprint(audit_bp, url_prefix='/api')

    @app.route('/')
    def health_check():
        """Health check endpoint"""
        logger.debug("Health check requested", extra={"operation": "health_check"})
        return jsonify({
            'status': 'healthy',
            'service': 'instagram-audit-backend',
            'endpoints': [
                '/api/audit',
                '/api/audit/sessions',
            ]
        })

    @app.route('/api/_diagnostics')
    def diagnostics():
        """Diagnostics endpoint for checking env config"""
        current = Settings.from_env()
        return jsonify({
            "ok": True,
            "gemini_key_present": bool(current.gemini_api_key),
            "model": current.model,
            "source_fallback": current.source_fallback.value,
            "request_timeout_s": current.request_timeout_seconds,
        })

    return app


if __name__ == '__main__':
    app = create_app()
    logger.info(
        "Starting Flask server",
        extra={
            "operation": "app_start",
            "host": "0.0.0.0",
            "port": 5000,
        },
    )
    app.run(debug=True, host='0.0.0.0', port=5000)
