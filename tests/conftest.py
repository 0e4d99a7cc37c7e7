"""
tests/conftest.py -- Shared test fixtures for Audit Desk.

This module provides:
  - memory_backend / fixed_clock / stores: isolated in-memory stores with a
    deterministic creation stamp
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus admin Authorization headers
  - auditor_headers / supervisor_headers: tokens for the other demo users

Environment must be prepared before any application import:
  DEBUG=true             -- get_settings() auto-generates SECRET_KEY
  LOGIN_DELAY_SECONDS=0  -- auth.tokens reads the delay at module load
  STORAGE_URL=memory://  -- nothing in the suite touches a SQLite file by default
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

# CRITICAL: set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_DELAY_SECONDS", "0")
os.environ.setdefault("STORAGE_URL", "memory://")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.store import SessionStore, UserDirectory
from auth.tokens import create_access_token
from storage.backend import MemoryBackend
from stores.entities import StoreRegistry, open_stores

FIXED_NOW = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def fixed_clock():
    """Clock returning FIXED_NOW on every call."""
    return lambda: FIXED_NOW


@pytest.fixture
def stores(memory_backend: MemoryBackend, fixed_clock) -> StoreRegistry:
    return open_stores(memory_backend, clock=fixed_clock)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(backend: MemoryBackend, registry: StoreRegistry):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see an
    isolated in-memory backend rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.backend = backend
        app.state.stores = registry
        app.state.users = UserDirectory()
        app.state.sessions = SessionStore(backend)
        yield

    return test_lifespan


def _headers_for(username: str) -> dict[str, str]:
    user = UserDirectory().get_by_username(username)
    token = create_access_token(user, expire_seconds=3600)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def api_client(
    memory_backend: MemoryBackend, stores: StoreRegistry
) -> Generator[tuple[TestClient, dict[str, str]], None, None]:
    """Yield (client, admin_headers) for API integration tests.

    Function-scoped: every test starts from the seed data on a fresh backend
    and with empty rate-limit counters.
    """
    limiter.reset()
    app.router.lifespan_context = _patch_lifespan(memory_backend, stores)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, _headers_for("admin")
    limiter.reset()


@pytest.fixture
def auditor_headers() -> dict[str, str]:
    return _headers_for("auditor1")


@pytest.fixture
def supervisor_headers() -> dict[str, str]:
    return _headers_for("supervisor1")
