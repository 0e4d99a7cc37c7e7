"""
auth/tokens.py -- Password checking, login flow and JWT utilities.

Security design decisions:
  Passwords: every allow-listed user shares Settings.demo_password. It is
       hashed once with bcrypt at module load and only the hash is kept here.
       A login always runs one bcrypt check, against the shared hash for a
       known username or against _DUMMY_HASH for an unknown one, so response
       time does not reveal which usernames exist.

  Failure message: unknown user and wrong password produce the same
       LOGIN_FAILED_MESSAGE.

  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       user_id, username, role and expiry. Verification returns None on any
       failure; the route layer turns that into a 401.

  SECRET_KEY: sourced from core.config.get_settings(). Dev mode (DEBUG=true)
       auto-generates a key with a warning; production refuses to start
       without one.

Layer rule: no imports from api/, stores/ or ingest/.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from auth.models import User
from auth.store import SessionStore, UserDirectory
from core.config import get_settings

logger = logging.getLogger("auditdesk.auth")

LOGIN_FAILED_MESSAGE = "Incorrect username or password."

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt, direct usage)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


_SHARED_HASH: str = hash_password(_settings.demo_password)
_DUMMY_HASH: str = hash_password("auditdesk_timing_dummy")


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def authenticate_user(directory: UserDirectory, username: str, password: str) -> User | None:
    """Check a username/password pair against the allow-list.

    Always runs bcrypt whether or not the user exists. Returns the User on
    success, None on any failure.
    """
    user = directory.get_by_username(username)
    if user is None:
        # Equalize timing: do not return before running bcrypt.
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, _SHARED_HASH):
        return None
    return user


@dataclass(frozen=True)
class LoginResult:
    """Outcome of login(): a user on success, the generic message otherwise."""

    user: User | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.user is not None


async def login(
    directory: UserDirectory,
    sessions: SessionStore,
    username: str,
    password: str,
    delay_seconds: float | None = None,
) -> LoginResult:
    """Sign in after the configured round-trip delay and persist the session.

    The delay stands in for a remote identity provider; set
    LOGIN_DELAY_SECONDS=0 to skip it.
    """
    delay = _settings.login_delay_seconds if delay_seconds is None else delay_seconds
    if delay > 0:
        await asyncio.sleep(delay)
    # bcrypt blocks; run it in a worker thread.
    user = await asyncio.to_thread(authenticate_user, directory, username, password)
    if user is None:
        logger.info("Failed login for username=%r", username)
        return LoginResult(error=LOGIN_FAILED_MESSAGE)
    sessions.save(user)
    logger.info("User %s logged in", user.username)
    return LoginResult(user=user)


def logout(sessions: SessionStore) -> None:
    sessions.clear()


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user: User, expire_seconds: int = 0) -> str:
    """Encode a signed JWT for user.

    expire_seconds of 0 (default) uses Settings.token_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    expire = datetime.now(timezone.utc) + timedelta(seconds=duration)
    payload = {
        "sub": user.username,
        "user_id": user.id,
        "role": user.role.value,
        "exp": expire,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure."""
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if "user_id" not in payload or "role" not in payload:
        return None
    return payload


# ---------------------------------------------------------------------------
# Cookie helper
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, expire_seconds: int = 0) -> None:
    """Write the JWT access token as an httpOnly cookie on the response.

    httponly keeps it away from scripts, samesite="lax" blocks cross-site
    POSTs, and secure follows SECURE_COOKIES. max_age matches the JWT expiry.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    response.set_cookie(
        "access_token",
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=duration,
    )
