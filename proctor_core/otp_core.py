"""
otp_core.py - Code generation and window arithmetic for proctor codes.

Pure functions only; nothing here touches storage, the network or the clock
(except `now_millis`, which exists so callers have one place to read it).

Algorithm (HOTP-style, RFC 4226 dynamic truncation, SHA-256 variant):
- key  = SHA-256(seed)
- mac  = HMAC-SHA256(key, counter as 8-byte big-endian)
- code = Truncate(mac) mod 10^digits, zero-padded

Windows (TOTP-style): counter = floor(floor(now_ms / 1000) / step_seconds).

Security note:
- The seed is never logged or returned by any function in this module.
"""

from typing import List, Tuple, Union
import hashlib
import hmac
import struct
import time

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6          # 6 digits, as shown to the candidate
DEFAULT_TIME_STEP = 30      # window length (seconds)
DEFAULT_DRIFT_STEPS = 1     # +/- 1 window accepted
MAX_DIGITS = 9              # 10^9 < 2^31, keeps the modulus inside the truncated value
MIN_DIGEST_SIZE = 19        # offset <= 15, so offset + 3 <= 18 must be addressable

Secret = Union[bytes, str]


# --- RFC helpers -----------------------------------------------------------
def derive_key(secret: Secret) -> bytes:
    """
    Derive the fixed-length HMAC key from the seed.

    The seed can be any length; hashing it gives a 32-byte key so that short
    and long seeds are treated the same way.

    Arguments:
        secret: seed bytes (a str is UTF-8 encoded first)
    """
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    return hashlib.sha256(secret).digest()


def int_to_bytes(i: int) -> bytes:
    """
    Encode a counter as 8-byte big-endian, as RFC 4226 requires.

    Example: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'

    Raises:
        ValueError: if the counter is negative or does not fit in 64 bits
    """
    if i < 0:
        raise ValueError("counter must be a non-negative integer")
    try:
        return struct.pack(">Q", i)
    except struct.error as e:
        raise ValueError("counter does not fit in 8 bytes") from e


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    Apply RFC 4226 dynamic truncation.

    - offset = last_byte & 0x0F (0..15)
    - take 4 bytes from offset, clear the MSB (0x7F) of the first one
    - return the resulting 31-bit unsigned integer

    Arguments:
        hmac_digest: HMAC digest (SHA-256 -> 32 bytes)
    Raises:
        ValueError: if the digest is too short for every possible offset
    """
    if len(hmac_digest) < MIN_DIGEST_SIZE:
        raise ValueError("digest must be at least %d bytes" % MIN_DIGEST_SIZE)
    offset = hmac_digest[-1] & 0x0F
    code = (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )
    return code


def check_digits(digits: int) -> None:
    # bool is an int subclass; True is not a width
    if isinstance(digits, bool) or not isinstance(digits, int):
        raise ValueError("digits must be an integer")
    if not 1 <= digits <= MAX_DIGITS:
        raise ValueError("digits must be between 1 and %d" % MAX_DIGITS)


def compute_code(secret: Secret, counter: int, digits: int = DEFAULT_DIGITS) -> str:
    """
    Compute the code for one counter value.

    Steps:
    1. key = SHA-256(secret)
    2. message = 8-byte big-endian counter
    3. HMAC-SHA256(key, message)
    4. Dynamic truncate -> 31-bit integer
    5. code = value % 10^digits
    6. Zero-pad to exactly `digits` characters

    Arguments:
        secret: seed (bytes or str)
        counter: non-negative counter (usually a window)
        digits: code width, 1..9

    Returns:
        str: zero-padded decimal code

    Raises:
        ValueError: on invalid digits or a negative counter
    """
    check_digits(digits)
    msg = int_to_bytes(counter)
    digest = hmac.new(derive_key(secret), msg, hashlib.sha256).digest()
    value = dynamic_truncate(digest)
    return str(value % (10 ** digits)).zfill(digits)


def accepted_codes(
    secret: Secret,
    window: int,
    drift: int = DEFAULT_DRIFT_STEPS,
    digits: int = DEFAULT_DIGITS,
) -> List[Tuple[int, str]]:
    """
    Return [(counter, code), ...] for window - drift .. window + drift.

    Negative counters are skipped: right after the epoch there are no past
    windows to tolerate.
    """
    if drift < 0:
        raise ValueError("drift must be >= 0")
    codes = []
    for counter in range(window - drift, window + drift + 1):
        if counter < 0:
            continue
        codes.append((counter, compute_code(secret, counter, digits)))
    return codes


# --- Window clock ----------------------------------------------------------
def _check_step(step_seconds: int) -> None:
    if step_seconds <= 0:
        raise ValueError("step_seconds must be a positive integer")


def current_window(now_millis: int, step_seconds: int = DEFAULT_TIME_STEP) -> int:
    """
    Map a wall-clock instant (epoch milliseconds) to its window counter.

    window = floor(floor(now_millis / 1000) / step_seconds)
    """
    _check_step(step_seconds)
    return (int(now_millis) // 1000) // step_seconds


def expires_in(now_millis: int, step_seconds: int = DEFAULT_TIME_STEP) -> int:
    """
    Seconds left in the window `now_millis` falls into (1..step_seconds).
    """
    _check_step(step_seconds)
    return step_seconds - ((int(now_millis) // 1000) % step_seconds)


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)
