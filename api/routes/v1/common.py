"""
api/routes/v1/common.py -- Helpers shared by the entity routers.

The stores treat a missing id as a silent no-op; the API checks existence
first and answers 404 with the structured error envelope instead.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request

from api.models import ErrorDetail
from stores.engine import EntityStore
from stores.entities import StoreRegistry


def get_stores(request: Request) -> StoreRegistry:
    return request.app.state.stores


def not_found(entity: str, record_id: Any) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="not_found", message=f"{entity} {record_id} not found.").model_dump(),
    )


def require_record(store: EntityStore, record_id: int, entity: str) -> Any:
    """Return the record or raise 404."""
    record = store.get(record_id)
    if record is None:
        raise not_found(entity, record_id)
    return record


def require_nested(parent: Any, collection: str, item_id: int, entity: str) -> Any:
    for item in getattr(parent, collection):
        if item.id == item_id:
            return item
    raise not_found(entity, item_id)
