"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in every router
under api/routes/v1/ (to apply per-route limits with @limiter.limit()).

A single shared instance keeps one in-memory counter store for all routes.
Tests call limiter.reset() between cases so counters do not leak.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
