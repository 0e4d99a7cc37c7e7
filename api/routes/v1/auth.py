"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login   -- allow-list login; sets JWT cookie, returns token
  POST /api/v1/auth/logout  -- clears cookie and persisted session
  GET  /api/v1/auth/me      -- current user profile (requires auth)

Security:
  POST /login is rate-limited by Settings.login_rate_limit per IP.
  login() always runs bcrypt and answers unknown user and wrong password with
  the same message ("bad_credentials").
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, MessageResponse, UserResponse
from auth.dependencies import get_current_user
from auth.models import User
from auth.tokens import create_access_token, login, logout, set_auth_cookie
from core.config import get_settings

router = APIRouter()


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        name=user.name,
        email=user.email,
        role=user.role.value,
        permissions=list(user.permissions),
    )


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(get_settings().login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
async def login_route(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and the shared demo password; set JWT cookie."""
    result = await login(request.app.state.users, request.app.state.sessions, body.username, body.password)
    if not result.ok:
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(error=ErrorDetail(code="bad_credentials", message=result.error)).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    settings = get_settings()
    token = create_access_token(result.user)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=settings.token_expire_seconds,
            user=_user_response(result.user),
        ).model_dump(),
    )
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
async def logout_route(request: Request) -> JSONResponse:
    """Clear the JWT cookie and the persisted session."""
    logout(request.app.state.sessions)
    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    resp.delete_cookie("access_token")
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return _user_response(current_user)
