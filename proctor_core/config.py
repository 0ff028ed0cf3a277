"""
config.py - Process configuration, read once from the environment.

Variables:
  PROCTOR_SEED        shared seed (required for verification to succeed)
  CODE_STEP_SECONDS   window length in seconds (default 30)
  DRIFT_STEPS         windows tolerated on each side (default 1, max 10)
  CODE_DIGITS         code width (default 6, max 9)
  PORT                HTTP port (default 8787)
  ALLOWED_ORIGINS     comma-separated CORS origins for /api
  FRAME_ANCESTORS     comma-separated CSP frame-ancestors
  DATABASE_FILE       SQLite ledger path (default data/proctor_codes.db)
  STATIC_ROOT         directory served for non-API paths (default: the page shipped with proctor_backend)
  LOG_LEVEL           logging level name (default INFO)

Empty variables count as unset.
"""

import logging
import os
from typing import Annotated, Optional, Tuple

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .otp_core import DEFAULT_DIGITS, DEFAULT_DRIFT_STEPS, DEFAULT_TIME_STEP, MAX_DIGITS

MAX_DRIFT_STEPS = 10
DEFAULT_PORT = 8787
DEFAULT_DATABASE_FILE = os.path.join("data", "proctor_codes.db")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Invalid configuration value; fatal at startup."""


class Settings(BaseSettings):
    """
    Immutable settings for one process.

    `secret` is excluded from repr so it never ends up in a log line or a
    traceback.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        populate_by_name=True,
        env_ignore_empty=True,
        extra="ignore",
    )

    secret: bytes = Field(default=b"", alias="PROCTOR_SEED", repr=False)
    step_seconds: int = Field(default=DEFAULT_TIME_STEP, alias="CODE_STEP_SECONDS", gt=0)
    drift_steps: int = Field(default=DEFAULT_DRIFT_STEPS, alias="DRIFT_STEPS", ge=0, le=MAX_DRIFT_STEPS)
    code_digits: int = Field(default=DEFAULT_DIGITS, alias="CODE_DIGITS", ge=1, le=MAX_DIGITS)
    port: int = Field(default=DEFAULT_PORT, alias="PORT", ge=1, le=65535)
    allowed_origins: Annotated[Tuple[str, ...], NoDecode] = Field(default=(), alias="ALLOWED_ORIGINS")
    frame_ancestors: Annotated[Tuple[str, ...], NoDecode] = Field(default=(), alias="FRAME_ANCESTORS")
    database_file: str = Field(default=DEFAULT_DATABASE_FILE, alias="DATABASE_FILE")
    static_root: Optional[str] = Field(default=None, alias="STATIC_ROOT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("allowed_origins", "frame_ancestors", mode="before")
    @classmethod
    def split_comma_list(cls, v):
        """Comma-separated value to a tuple, blank entries dropped."""
        if isinstance(v, str):
            return tuple(part.strip() for part in v.split(",") if part.strip())
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def check_log_level(cls, v):
        level = str(v).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def has_secret(self) -> bool:
        return bool(self.secret)

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the process environment.

        Raises:
            ConfigError: if a variable is malformed or out of range
        """
        try:
            return cls()
        except ValidationError as e:
            # input values are left out of the message; PROCTOR_SEED must not leak
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(f"Invalid configuration: {problems}") from e


def warn_if_unconfigured(settings: Settings) -> None:
    if not settings.has_secret:
        logger.warning("PROCTOR_SEED not set. Set PROCTOR_SEED in environment for deterministic codes.")


def configure_logging(level: str = "INFO") -> None:
    """Install the `[LEVEL] logger: message` handler on the root logger."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
