"""
tests/test_auth.py -- Unit tests for the allow-list login, session blob and JWT helpers.

Covers:
  - shared demo password accepted for every allow-listed user
  - unknown user and wrong password give the same generic message
  - session persisted on login, cleared on logout, corrupt blob discarded
  - JWT round trip and rejection of tampered tokens
  - permission checks ("all" grants everything)
"""

from __future__ import annotations

import asyncio

from auth.dependencies import has_permission
from auth.models import Role
from auth.store import SESSION_KEY, SessionStore, UserDirectory
from auth.tokens import (
    LOGIN_FAILED_MESSAGE,
    authenticate_user,
    create_access_token,
    decode_access_token,
    hash_password,
    login,
    logout,
    verify_password,
)
from core.config import get_settings

PASSWORD = get_settings().demo_password


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("s3cret")
        assert hashed != "s3cret"
        assert verify_password("s3cret", hashed)
        assert not verify_password("wrong", hashed)

    def test_malformed_hash_is_rejected(self) -> None:
        """A hash bcrypt cannot parse verifies as False instead of raising."""
        assert verify_password("s3cret", "not-a-bcrypt-hash") is False


class TestAuthenticate:
    def test_every_listed_user_accepts_shared_password(self) -> None:
        directory = UserDirectory()
        for user in directory.list_users():
            assert authenticate_user(directory, user.username, PASSWORD) == user

    def test_failures_return_none(self) -> None:
        directory = UserDirectory()
        assert authenticate_user(directory, "admin", PASSWORD + "x") is None
        assert authenticate_user(directory, "nobody", PASSWORD) is None


class TestLoginFlow:
    def test_login_persists_session(self, memory_backend) -> None:
        sessions = SessionStore(memory_backend)
        result = asyncio.run(login(UserDirectory(), sessions, "auditor1", PASSWORD, delay_seconds=0))
        assert result.ok, f"Expected success, got {result.error}"
        assert result.user.role is Role.auditor
        assert sessions.load() == result.user

    def test_same_message_for_unknown_user_and_bad_password(self, memory_backend) -> None:
        sessions = SessionStore(memory_backend)
        unknown = asyncio.run(login(UserDirectory(), sessions, "ghost", PASSWORD, delay_seconds=0))
        wrong = asyncio.run(login(UserDirectory(), sessions, "admin", "nope", delay_seconds=0))
        assert unknown.error == wrong.error == LOGIN_FAILED_MESSAGE
        assert sessions.load() is None, "Failed logins must not create a session"

    def test_logout_clears_session(self, memory_backend) -> None:
        sessions = SessionStore(memory_backend)
        asyncio.run(login(UserDirectory(), sessions, "admin", PASSWORD, delay_seconds=0))
        logout(sessions)
        assert memory_backend.get(SESSION_KEY) is None

    def test_corrupt_session_is_discarded(self, memory_backend) -> None:
        memory_backend.set(SESSION_KEY, "{definitely not a user")
        assert SessionStore(memory_backend).load() is None
        assert memory_backend.get(SESSION_KEY) is None, "Corrupt blob must be deleted"


class TestTokens:
    def test_round_trip(self) -> None:
        user = UserDirectory().get_by_username("supervisor1")
        payload = decode_access_token(create_access_token(user, expire_seconds=60))
        assert payload["user_id"] == user.id
        assert payload["sub"] == "supervisor1"
        assert payload["role"] == "supervisor"

    def test_tampered_token_rejected(self) -> None:
        token = create_access_token(UserDirectory().get_by_username("admin"))
        assert decode_access_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb")) is None
        assert decode_access_token("garbage") is None


class TestPermissions:
    def test_admin_has_everything(self) -> None:
        admin = UserDirectory().get_by_username("admin")
        assert has_permission(admin, "checklists")
        assert has_permission(admin, "anything-at-all")

    def test_supervisor_lacks_checklists(self) -> None:
        supervisor = UserDirectory().get_by_username("supervisor1")
        assert has_permission(supervisor, "reports")
        assert not has_permission(supervisor, "checklists")
