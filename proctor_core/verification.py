"""
verification.py - Checks a submitted code and records its consumption.

One verification = one bounded computation (2 * drift + 1 HMACs) plus at
most one atomic ledger insert. State per (window, session) only ever moves
Unconsumed -> Consumed, through `ReplayGuard.try_consume`.

Note on the replay key: the ledger is always keyed by the *current* window,
even when the submitted code matched a drift neighbour. A code accepted for
window - 1 is recorded as consuming `window`.
"""

import enum
import hmac
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from proctor_database.guard import ReplayGuard, StorageFailure

from .otp_core import (
    DEFAULT_DIGITS,
    DEFAULT_DRIFT_STEPS,
    DEFAULT_TIME_STEP,
    Secret,
    accepted_codes,
    check_digits,
    compute_code,
    current_window,
    expires_in,
)

logger = logging.getLogger(__name__)


class OutcomeKind(enum.Enum):
    ACCEPTED = "accepted"
    ALREADY_USED = "already_used"
    INVALID_CODE = "invalid_code"
    INVALID_INPUT = "invalid_input"
    SERVER_MISCONFIGURED = "server_misconfigured"
    STORAGE_FAILURE = "storage_failure"


# Wire error strings; INVALID_INPUT shares "invalid_code" with a wrong code.
_ERROR_CODES = {
    OutcomeKind.ALREADY_USED: "already_used",
    OutcomeKind.INVALID_CODE: "invalid_code",
    OutcomeKind.INVALID_INPUT: "invalid_code",
    OutcomeKind.SERVER_MISCONFIGURED: "server_not_configured",
    OutcomeKind.STORAGE_FAILURE: "storage_unavailable",
}


@dataclass(frozen=True)
class Outcome:
    """
    Result of one verification.

    `window` and `expires_in` are set for ACCEPTED, ALREADY_USED and
    INVALID_CODE so the caller can tell the user when a new code appears.
    """

    kind: OutcomeKind
    window: Optional[int] = None
    expires_in: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.ACCEPTED

    @property
    def retryable(self) -> bool:
        return self.kind is OutcomeKind.STORAGE_FAILURE

    @property
    def error(self) -> Optional[str]:
        return _ERROR_CODES.get(self.kind)

    def as_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"ok": self.ok}
        if not self.ok:
            body["error"] = self.error
        if self.window is not None:
            body["window"] = self.window
            body["expiresInSeconds"] = self.expires_in
        return body


class VerificationService:
    """
    Verifies (session, code) pairs against the seed and the ledger.

    The seed is injected here once and never leaves the instance.
    """

    def __init__(
        self,
        secret: Secret,
        guard: ReplayGuard,
        step_seconds: int = DEFAULT_TIME_STEP,
        drift_steps: int = DEFAULT_DRIFT_STEPS,
        digits: int = DEFAULT_DIGITS,
    ) -> None:
        if step_seconds <= 0:
            raise ValueError("step_seconds must be > 0")
        if drift_steps < 0:
            raise ValueError("drift_steps must be >= 0")
        check_digits(digits)
        self._secret = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret or b"")
        self._guard = guard
        self.step_seconds = step_seconds
        self.drift_steps = drift_steps
        self.digits = digits
        self._code_pattern = re.compile(r"[0-9]{%d}" % digits)

    @classmethod
    def from_settings(cls, settings, guard: ReplayGuard) -> "VerificationService":
        return cls(
            settings.secret,
            guard,
            step_seconds=settings.step_seconds,
            drift_steps=settings.drift_steps,
            digits=settings.code_digits,
        )

    @property
    def configured(self) -> bool:
        return bool(self._secret)

    def is_well_formed(self, code: Any) -> bool:
        """True if `code` is a str of exactly `digits` ASCII digits."""
        return isinstance(code, str) and self._code_pattern.fullmatch(code) is not None

    def accepted_codes(self, window: int) -> List[str]:
        return [code for _, code in accepted_codes(self._secret, window, self.drift_steps, self.digits)]

    def current_codes(self, now_millis: int) -> Dict[str, Any]:
        """
        The code for `now_millis`, its neighbours and the time left.

        Raises:
            ValueError: if no seed is configured
        """
        if not self.configured:
            raise ValueError("no seed configured")
        window = current_window(now_millis, self.step_seconds)
        return {
            "window": window,
            "code": compute_code(self._secret, window, self.digits),
            "neighbors": self.accepted_codes(window),
            "expiresIn": expires_in(now_millis, self.step_seconds),
        }

    def verify(self, session: str, submitted_code: Any, now_millis: int) -> Outcome:
        if not isinstance(session, str) or not session or not self.is_well_formed(submitted_code):
            return Outcome(OutcomeKind.INVALID_INPUT)
        if not self.configured:
            logger.error("Verification refused: PROCTOR_SEED is not configured")
            return Outcome(OutcomeKind.SERVER_MISCONFIGURED)

        window = current_window(now_millis, self.step_seconds)
        remaining = expires_in(now_millis, self.step_seconds)
        codes = self.accepted_codes(window)
        sid = session[:8]

        try:
            if self._guard.is_consumed(window, session):
                logger.info("Replay rejected: window=%s session=%s...", window, sid)
                return Outcome(OutcomeKind.ALREADY_USED, window, remaining)

            # compare against every candidate; no early exit on a match
            matched = False
            for code in codes:
                matched |= hmac.compare_digest(code, submitted_code)
            if not matched:
                logger.info("Invalid code: window=%s session=%s...", window, sid)
                return Outcome(OutcomeKind.INVALID_CODE, window, remaining)

            if not self._guard.try_consume(window, session, now_millis):
                logger.info("Lost consume race: window=%s session=%s...", window, sid)
                return Outcome(OutcomeKind.ALREADY_USED, window, remaining)
        except StorageFailure:
            logger.exception("Ledger unavailable: window=%s session=%s...", window, sid)
            return Outcome(OutcomeKind.STORAGE_FAILURE)

        logger.info("Code accepted: window=%s session=%s...", window, sid)
        return Outcome(OutcomeKind.ACCEPTED, window, remaining)
