"""
api/routes/v1/audits.py -- Audit CRUD.

Routes:
  GET    /audits              -- list audits
  POST   /audits              -- create audit
  POST   /audits/clear        -- delete every audit (admin)
  GET    /audits/{audit_id}   -- one audit
  PATCH  /audits/{audit_id}   -- partial update; merged dates must keep end >= start
  DELETE /audits/{audit_id}   -- delete (no cascade to executions, actions or reports)

All routes require the "audits" permission.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.limiter import limiter
from api.models import AuditCreate, AuditPatch, ErrorDetail
from api.routes.v1.common import get_stores, require_record
from auth.dependencies import require_admin, require_permission
from core.models import Audit

router = APIRouter(dependencies=[Depends(require_permission("audits"))])


@limiter.limit("60/minute")
@router.get("/audits", response_model=list[Audit])
def list_audits(request: Request) -> list[Audit]:
    return list(get_stores(request).audits.list())


@limiter.limit("30/minute")
@router.post("/audits", response_model=Audit, status_code=201)
def create_audit(request: Request, body: AuditCreate) -> Audit:
    return get_stores(request).audits.add(body.model_dump())


@router.post("/audits/clear", status_code=204, dependencies=[Depends(require_admin)])
def clear_audits(request: Request) -> Response:
    get_stores(request).audits.clear_all()
    return Response(status_code=204)


@limiter.limit("60/minute")
@router.get("/audits/{audit_id}", response_model=Audit)
def get_audit(request: Request, audit_id: int) -> Audit:
    return require_record(get_stores(request).audits, audit_id, "Audit")


@limiter.limit("30/minute")
@router.patch("/audits/{audit_id}", response_model=Audit)
def update_audit(request: Request, audit_id: int, body: AuditPatch) -> Audit:
    store = get_stores(request).audits
    current = require_record(store, audit_id, "Audit")
    changes = body.changes()
    start = changes.get("start_date", current.start_date)
    end = changes.get("end_date", current.end_date)
    if end < start:
        raise HTTPException(
            status_code=422,
            detail=ErrorDetail(code="invalid_dates", message="end_date must not be before start_date.").model_dump(),
        )
    store.update(audit_id, changes)
    return store.get(audit_id)


@limiter.limit("30/minute")
@router.delete("/audits/{audit_id}", status_code=204)
def delete_audit(request: Request, audit_id: int) -> Response:
    store = get_stores(request).audits
    require_record(store, audit_id, "Audit")
    store.remove(audit_id)
    return Response(status_code=204)
