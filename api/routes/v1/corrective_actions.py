"""
api/routes/v1/corrective_actions.py -- Corrective action tracking.

Routes:
  GET    /corrective-actions               -- list
  POST   /corrective-actions               -- create
  POST   /corrective-actions/clear         -- delete everything (admin)
  GET    /corrective-actions/{action_id}   -- one action
  PATCH  /corrective-actions/{action_id}   -- partial update
  DELETE /corrective-actions/{action_id}   -- delete

finding_ref arrives as the composite "<execution_id>-<finding_id>" string
from GET /executions/available-findings. It must resolve to an existing
finding when sent; finding_description and audit_name are copied from the
linked records when the client leaves them blank. Those copies are not
refreshed later.

All routes require the "actions" permission.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.limiter import limiter
from api.models import CorrectiveActionCreate, CorrectiveActionPatch, ErrorDetail
from api.routes.v1.common import get_stores, require_record
from auth.dependencies import require_admin, require_permission
from core.models import CorrectiveAction
from stores.entities import StoreRegistry
from stores.views import find_finding, parse_composite_id

router = APIRouter(dependencies=[Depends(require_permission("actions"))])


def _resolve_links(stores: StoreRegistry, changes: dict[str, Any]) -> dict[str, Any]:
    """Turn the composite finding id into a FindingRef and fill denormalized copies."""
    composite = changes.get("finding_ref")
    if composite is not None:
        match = find_finding(stores.executions.list(), composite)
        if match is None:
            raise HTTPException(
                status_code=422,
                detail=ErrorDetail(code="unknown_finding", message=f"Finding {composite} does not exist.").model_dump(),
            )
        _execution, finding = match
        changes["finding_ref"] = parse_composite_id(composite)
        if not changes.get("finding_description"):
            changes["finding_description"] = finding.description

    audit_id = changes.get("audit_id")
    if audit_id is not None and not changes.get("audit_name"):
        audit = stores.audits.get(audit_id)
        if audit is not None:
            changes["audit_name"] = audit.name
    return changes


@limiter.limit("60/minute")
@router.get("/corrective-actions", response_model=list[CorrectiveAction])
def list_actions(request: Request) -> list[CorrectiveAction]:
    return list(get_stores(request).actions.list())


@limiter.limit("30/minute")
@router.post("/corrective-actions", response_model=CorrectiveAction, status_code=201)
def create_action(request: Request, body: CorrectiveActionCreate) -> CorrectiveAction:
    stores = get_stores(request)
    return stores.actions.add(_resolve_links(stores, body.model_dump()))


@router.post("/corrective-actions/clear", status_code=204, dependencies=[Depends(require_admin)])
def clear_actions(request: Request) -> Response:
    get_stores(request).actions.clear_all()
    return Response(status_code=204)


@limiter.limit("60/minute")
@router.get("/corrective-actions/{action_id}", response_model=CorrectiveAction)
def get_action(request: Request, action_id: int) -> CorrectiveAction:
    return require_record(get_stores(request).actions, action_id, "Corrective action")


@limiter.limit("30/minute")
@router.patch("/corrective-actions/{action_id}", response_model=CorrectiveAction)
def update_action(request: Request, action_id: int, body: CorrectiveActionPatch) -> CorrectiveAction:
    stores = get_stores(request)
    require_record(stores.actions, action_id, "Corrective action")
    stores.actions.update(action_id, _resolve_links(stores, body.changes()))
    return stores.actions.get(action_id)


@limiter.limit("30/minute")
@router.delete("/corrective-actions/{action_id}", status_code=204)
def delete_action(request: Request, action_id: int) -> Response:
    store = get_stores(request).actions
    require_record(store, action_id, "Corrective action")
    store.remove(action_id)
    return Response(status_code=204)
