"""
PROCTOR API ROUTES - FLASK BLUEPRINT

Endpoints (prefix /api):
  GET  /api/session       sets the `sid` cookie if missing
  POST /api/verify-code   body {"code": "123456"}

EXAMPLE:
curl -c jar -b jar http://localhost:8787/api/session
curl -c jar -b jar -X POST http://localhost:8787/api/verify-code -H "Content-Type: application/json" -d "{\"code\": \"123456\"}"
"""

import secrets

from flask import Blueprint, current_app, jsonify, request

from proctor_core.verification import Outcome, OutcomeKind

api_bp = Blueprint('proctor_api', __name__, url_prefix='/api')

SESSION_COOKIE = "sid"
SESSION_MAX_AGE = 30 * 24 * 3600   # 30 days
SESSION_ID_BYTES = 16
MAX_SESSION_ID_LENGTH = 128
RETRY_AFTER_SECONDS = 1

STATUS_BY_OUTCOME = {
    OutcomeKind.ACCEPTED: 200,
    OutcomeKind.INVALID_INPUT: 400,
    OutcomeKind.INVALID_CODE: 401,
    OutcomeKind.ALREADY_USED: 409,
    OutcomeKind.SERVER_MISCONFIGURED: 500,
    OutcomeKind.STORAGE_FAILURE: 503,
}


def make_sid() -> str:
    return secrets.token_hex(SESSION_ID_BYTES)


def _current_sid():
    """Return (sid, is_new). A missing or oversized cookie gets a fresh sid."""
    sid = request.cookies.get(SESSION_COOKIE, "")
    if sid and len(sid) <= MAX_SESSION_ID_LENGTH:
        return sid, False
    return make_sid(), True


def _issue_cookie(response, sid: str) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        sid,
        max_age=SESSION_MAX_AGE,
        path="/",
        httponly=True,
        samesite="Lax",
    )


def outcome_response(outcome: Outcome):
    response = jsonify(outcome.as_dict())
    response.status_code = STATUS_BY_OUTCOME[outcome.kind]
    if outcome.retryable:
        response.headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
    return response


@api_bp.route('/session', methods=['GET'])
def session():
    """
    ESTABLISH A SESSION

      curl -c jar http://localhost:8787/api/session
    """
    sid, is_new = _current_sid()
    response = jsonify({"ok": True})
    if is_new:
        _issue_cookie(response, sid)
    return response


@api_bp.route('/verify-code', methods=['POST'])
def verify_code():
    """
    VERIFY A ONE-TIME CODE FOR THIS SESSION AND THE CURRENT WINDOW

    Input (JSON body):
      {"code": "123456"}   # exactly CODE_DIGITS ASCII digits

    Output:
      200 {"ok": true, "window": 56843861, "expiresInSeconds": 17}
      400 {"ok": false, "error": "invalid_code"}                     malformed body or code
      401 {"ok": false, "error": "invalid_code", "window", "expiresInSeconds"}
      409 {"ok": false, "error": "already_used", "window", "expiresInSeconds"}
      500 {"ok": false, "error": "server_not_configured"}
      503 {"ok": false, "error": "storage_unavailable"}              retry later
    """
    sid, is_new = _current_sid()
    data = request.get_json(silent=True)
    code = data.get("code") if isinstance(data, dict) else None

    verifier = current_app.extensions["proctor_verifier"]
    now = current_app.config["PROCTOR_CLOCK"]()
    outcome = verifier.verify(sid, code, now)

    response = outcome_response(outcome)
    if is_new:
        _issue_cookie(response, sid)
    return response
