"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two token sources are checked in priority order:
  1. JWT cookie ("access_token") -- set by POST /api/v1/auth/login.
  2. Authorization: Bearer <token> header -- scripted API clients.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.
require_permission(name) builds a dependency that also raises HTTP 403 when
the user's permission list lacks name (the "all" wildcard grants anything).

Layer rule: no imports from stores/ or ingest/. This module may import from
fastapi because it is part of the dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, HTTPException, Request

from auth.models import ALL_PERMISSIONS, User
from auth.tokens import decode_access_token


def has_permission(user: User, permission: str) -> bool:
    return ALL_PERMISSIONS in user.permissions or permission in user.permissions


def try_get_current_user(request: Request) -> User | None:
    """Authenticate the request via cookie or Bearer header. Never raises."""
    directory = request.app.state.users

    token: str | None = request.cookies.get("access_token")
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    if not token:
        return None

    payload = decode_access_token(token)
    if payload is None:
        return None
    return directory.get_by_id(payload["user_id"])


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user


def require_permission(permission: str) -> Callable[..., User]:
    """Dependency factory: 401 if unauthenticated, 403 without permission.

    Use as a FastAPI dependency:
        router = APIRouter(dependencies=[Depends(require_permission("reports"))])
    """

    def _dependency(user: User = Depends(get_current_user)) -> User:
        if not has_permission(user, permission):
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": f"Permission '{permission}' required."},
            )
        return user

    return _dependency


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Require the "all" permission (administrators)."""
    if not has_permission(user, ALL_PERMISSIONS):
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Admin access required."},
        )
    return user
