"""
proctor_core package
====================

Time-windowed one-time codes for proctored sessions: the proctor reads the
current code (`proctor-code show`), the candidate types it in, and the server
accepts it at most once per session per window.

──────────────────────────────────────────────
Core algorithm
──────────────────────────────────────────────
- Code (HOTP-style, RFC 4226 dynamic truncation):
  code = Truncate(HMAC-SHA256(key=SHA-256(seed), msg=counter)) mod 10^digits

- Window (TOTP-style):
  counter = floor(floor(now_ms / 1000) / step_seconds), default step 30s.

- Drift:
  codes for window - drift .. window + drift are all accepted (default 1).

- Replay:
  one ledger record per (window, session); the second redemption in the
  same window is rejected as already used.

──────────────────────────────────────────────
Quick example
──────────────────────────────────────────────
>>> from proctor_core import VerificationService
>>> from proctor_database import InMemoryReplayGuard
>>> service = VerificationService(b"test-seed", InMemoryReplayGuard())
>>> service.verify("sid-1", "165774", 30_010_000).ok
True
>>> service.verify("sid-1", "165774", 30_010_000).error
'already_used'
"""

from .config import ConfigError, Settings, configure_logging
from .otp_core import accepted_codes, compute_code, current_window, expires_in, now_millis
from .verification import Outcome, OutcomeKind, VerificationService

__all__ = [
    "ConfigError",
    "Outcome",
    "OutcomeKind",
    "Settings",
    "VerificationService",
    "accepted_codes",
    "compute_code",
    "configure_logging",
    "current_window",
    "expires_in",
    "now_millis",
]
