"""
api/routes/v1/audit_types.py -- Audit type administration.

Routes (static paths registered before /audit-types/{type_id}):
  GET    /audit-types                   -- list all types
  POST   /audit-types                   -- create type (admin)
  GET    /audit-types/active            -- active types only
  GET    /audit-types/audits-by-type    -- audits grouped by type string
  POST   /audit-types/clear             -- delete every type (admin)
  GET    /audit-types/{type_id}         -- one type
  PATCH  /audit-types/{type_id}         -- partial update (admin)
  DELETE /audit-types/{type_id}         -- delete (admin)
  POST   /audit-types/{type_id}/toggle  -- flip active flag (admin)

Reads are open to any authenticated user because audit forms need the type
list; every mutation requires the "all" permission.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter
from api.models import AuditTypeCreate, AuditTypePatch
from api.routes.v1.common import get_stores, require_record
from auth.dependencies import get_current_user, require_admin
from core.models import AuditType
from stores.views import AuditTypeGroup, audits_by_type

router = APIRouter(dependencies=[Depends(get_current_user)])


@limiter.limit("60/minute")
@router.get("/audit-types", response_model=list[AuditType])
def list_audit_types(request: Request) -> list[AuditType]:
    return list(get_stores(request).audit_types.list())


@limiter.limit("30/minute")
@router.post("/audit-types", response_model=AuditType, status_code=201, dependencies=[Depends(require_admin)])
def create_audit_type(request: Request, body: AuditTypeCreate) -> AuditType:
    return get_stores(request).audit_types.add(body.model_dump())


@limiter.limit("60/minute")
@router.get("/audit-types/active", response_model=list[AuditType])
def list_active_audit_types(request: Request) -> list[AuditType]:
    return list(get_stores(request).audit_types.active_types())


@limiter.limit("60/minute")
@router.get("/audit-types/audits-by-type", response_model=list[AuditTypeGroup])
def group_audits_by_type(request: Request) -> list[AuditTypeGroup]:
    """Audits grouped by type name. Groups for renamed or deleted types carry audit_type null."""
    stores = get_stores(request)
    return audits_by_type(stores.audits.list(), stores.audit_types.list())


@router.post("/audit-types/clear", status_code=204, dependencies=[Depends(require_admin)])
def clear_audit_types(request: Request) -> Response:
    get_stores(request).audit_types.clear_all()
    return Response(status_code=204)


@limiter.limit("60/minute")
@router.get("/audit-types/{type_id}", response_model=AuditType)
def get_audit_type(request: Request, type_id: int) -> AuditType:
    return require_record(get_stores(request).audit_types, type_id, "Audit type")


@limiter.limit("30/minute")
@router.patch("/audit-types/{type_id}", response_model=AuditType, dependencies=[Depends(require_admin)])
def update_audit_type(request: Request, type_id: int, body: AuditTypePatch) -> AuditType:
    store = get_stores(request).audit_types
    require_record(store, type_id, "Audit type")
    store.update(type_id, body.changes())
    return store.get(type_id)


@limiter.limit("30/minute")
@router.delete("/audit-types/{type_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_audit_type(request: Request, type_id: int) -> Response:
    """Delete a type. Audits keep their type string; see audits-by-type."""
    store = get_stores(request).audit_types
    require_record(store, type_id, "Audit type")
    store.remove(type_id)
    return Response(status_code=204)


@limiter.limit("30/minute")
@router.post("/audit-types/{type_id}/toggle", response_model=AuditType, dependencies=[Depends(require_admin)])
def toggle_audit_type(request: Request, type_id: int) -> AuditType:
    store = get_stores(request).audit_types
    require_record(store, type_id, "Audit type")
    store.toggle_active(type_id)
    return store.get(type_id)
