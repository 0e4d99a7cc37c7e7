"""
auth/store.py -- The user allow-list and the persisted session.

UserDirectory is a read-only repository over the fixed demo users. There is
no registration and no per-user password: every listed user authenticates
with the shared demo password (see auth/tokens.py).

SessionStore keeps the signed-in user as one JSON blob under the
"session_user" key of the key-value backend, so a CLI run or a restarted
server still knows who logged in last. A blob that does not parse is deleted
and treated as logged out.
"""

from __future__ import annotations

import logging

from pydantic import TypeAdapter, ValidationError

from auth.models import ALL_PERMISSIONS, Role, User
from storage.backend import KeyValueBackend, StorageError

logger = logging.getLogger("auditdesk.auth")

SESSION_KEY = "session_user"

_DEMO_USERS: tuple[User, ...] = (
    User(1, "admin", "Administrador", "admin@empresa.com", Role.admin, (ALL_PERMISSIONS,)),
    User(
        2,
        "auditor1",
        "Juan Pérez",
        "juan.perez@empresa.com",
        Role.auditor,
        ("audits", "checklists", "reports", "actions"),
    ),
    User(
        3,
        "supervisor1",
        "María García",
        "maria.garcia@empresa.com",
        Role.supervisor,
        ("audits", "reports", "actions"),
    ),
)

_user_adapter = TypeAdapter(User)


# ---------------------------------------------------------------------------
# Allow-list
# ---------------------------------------------------------------------------


class UserDirectory:
    """Lookup over the allow-list.

    Usage:
        directory = UserDirectory()
        directory.get_by_username("auditor1")
    """

    def __init__(self, users: tuple[User, ...] = _DEMO_USERS) -> None:
        self._by_username = {u.username: u for u in users}
        self._by_id = {u.id: u for u in users}

    def get_by_username(self, username: str) -> User | None:
        return self._by_username.get(username)

    def get_by_id(self, user_id: int) -> User | None:
        return self._by_id.get(user_id)

    def list_users(self) -> list[User]:
        return list(self._by_id.values())


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class SessionStore:
    """The signed-in user, persisted as a single blob."""

    def __init__(self, backend: KeyValueBackend) -> None:
        self._backend = backend

    def save(self, user: User) -> None:
        try:
            self._backend.set(SESSION_KEY, _user_adapter.dump_json(user).decode("utf-8"))
        except StorageError:
            logger.error("Could not persist session for %s", user.username, exc_info=True)

    def load(self) -> User | None:
        try:
            raw = self._backend.get(SESSION_KEY)
        except StorageError:
            logger.warning("Could not read session; treating as logged out", exc_info=True)
            return None
        if not raw:
            return None
        try:
            return _user_adapter.validate_json(raw)
        except ValidationError:
            logger.warning("Discarding corrupt session blob")
            self.clear()
            return None

    def clear(self) -> None:
        try:
            self._backend.delete(SESSION_KEY)
        except StorageError:
            logger.error("Could not delete session", exc_info=True)
