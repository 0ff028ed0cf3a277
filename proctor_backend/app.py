"""
FLASK APP ENTRY POINT - PROCTOR CODE SERVER
===========================================

Builds the Flask app around a VerificationService:
- /api/* routes from proctor_backend.routes (session cookie + verify-code)
- CORS on /api/* only, when ALLOWED_ORIGINS is set
- CSP frame-ancestors on every response, when FRAME_ANCESTORS is set
- everything else served from STATIC_ROOT (default: proctor_backend/frontend),
  falling back to index.html

Run:
    PROCTOR_SEED=your-secret python -m proctor_backend.app
"""
import logging
import os

from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, NotFound

from proctor_core.config import Settings, configure_logging, warn_if_unconfigured
from proctor_core.otp_core import now_millis
from proctor_core.verification import VerificationService
from proctor_database import ReplayGuard, SqliteReplayGuard

from .routes import api_bp

logger = logging.getLogger(__name__)

DEFAULT_STATIC_ROOT = os.path.join(os.path.dirname(__file__), "frontend")
CSP_DEFAULT_SRC = "default-src 'self' 'unsafe-inline' 'unsafe-eval' data:"


def content_security_policy(frame_ancestors) -> str:
    return f"frame-ancestors {' '.join(frame_ancestors)}; {CSP_DEFAULT_SRC}"


def create_app(settings: Settings = None, guard: ReplayGuard = None) -> Flask:
    """
    Application factory.

    Arguments:
        settings: process settings (default: read from the environment)
        guard: consumption ledger (default: SQLite at settings.database_file)
    """
    if settings is None:
        settings = Settings.from_env()
    warn_if_unconfigured(settings)
    if guard is None:
        guard = SqliteReplayGuard(settings.database_file)

    # static serving is done by the catch-all route below
    app = Flask(__name__, static_folder=None)
    app.config["PROCTOR_SETTINGS"] = settings
    app.config["PROCTOR_CLOCK"] = now_millis
    app.config["PROCTOR_STATIC_ROOT"] = os.path.abspath(settings.static_root or DEFAULT_STATIC_ROOT)
    app.extensions["proctor_verifier"] = VerificationService.from_settings(settings, guard)

    # CORS for API routes only, and only for the configured origins
    if settings.allowed_origins:
        CORS(
            app,
            resources={r"/api/*": {"origins": list(settings.allowed_origins)}},
            supports_credentials=True,
        )

    app.register_blueprint(api_bp)

    @app.after_request
    def set_security_headers(response):
        # without FRAME_ANCESTORS the page can be embedded anywhere
        if settings.frame_ancestors:
            response.headers["Content-Security-Policy"] = content_security_policy(settings.frame_ancestors)
        return response

    @app.errorhandler(HTTPException)
    def api_http_error(e):
        if not request.path.startswith("/api/"):
            return e
        return jsonify({"ok": False, "error": e.name.lower().replace(" ", "_")}), e.code

    @app.route("/", defaults={"path": ""})
    @app.route("/<path:path>")
    def static_or_index(path):
        if path.startswith("api/"):
            raise NotFound()
        root = app.config["PROCTOR_STATIC_ROOT"]
        if path and os.path.isfile(os.path.join(root, path)):
            return send_from_directory(root, path)
        if os.path.isfile(os.path.join(root, "index.html")):
            return send_from_directory(root, "index.html")
        raise NotFound()

    return app


if __name__ == "__main__":
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info("Listening on http://localhost:%s", settings.port)
    app.run(host="0.0.0.0", port=settings.port, threaded=True)
