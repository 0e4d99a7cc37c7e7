"""
core/config.py -- Audit Desk settings, read once from the environment and .env.

Every environment read happens here; other modules call get_settings().
Field names map to upper-case variables (storage_url -> STORAGE_URL):

  DEBUG                 dev mode; a missing SECRET_KEY is generated
  SECRET_KEY            JWT signing key, >= 32 characters
  STORAGE_URL           SQLAlchemy URL of the blob store, or memory://
  DEMO_PASSWORD         shared password of the demo users
  LOGIN_DELAY_SECONDS   simulated latency of the login call
  MAX_UPLOAD_BYTES      per-file ingestion ceiling

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, stores/, storage/ or ingest/.
"""

import logging
import secrets
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("auditdesk.config")

_DEFAULT_STORAGE_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auditdesk.db'}"


def utc_now() -> datetime:
    """Default clock for stores and auth: timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return value in UTC. A value without tzinfo is taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Settings(BaseSettings):
    """Environment-backed settings. Every field has a default, so tests need no .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    # SQLAlchemy URL of the key-value blob store. "memory://" selects the
    # in-process MemoryBackend (nothing survives a restart).
    storage_url: str = _DEFAULT_STORAGE_URL

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    token_expire_seconds: int = 8 * 3600
    # Shared password of the demo allow-list. Hashed once with bcrypt at
    # import time of auth.tokens; the plaintext never leaves this object.
    demo_password: str = "123456"
    # Simulated round-trip before the credential check resolves.
    login_delay_seconds: float = Field(default=1.0, ge=0)

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    max_upload_bytes: int = 10 * 1024 * 1024

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Generate a throwaway key in debug mode, otherwise require one.

        Generated keys change on every start, so issued tokens die with the process.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Tokens will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
