"""
api/routes/v1/executions.py -- Checklist executions with their items and findings.

Routes (static paths registered before /executions/{execution_id}):
  GET    /executions                                      -- list
  POST   /executions                                      -- create (items/findings optional)
  GET    /executions/available-findings                   -- every finding, composite ids
  POST   /executions/restore-defaults                     -- seed minus deleted ids (admin)
  GET    /executions/deleted-ledger                       -- ids remembered as deleted
  DELETE /executions/deleted-ledger                       -- forget them (admin)
  POST   /executions/clear                                -- delete everything (admin)
  GET    /executions/{execution_id}                       -- one execution
  PATCH  /executions/{execution_id}                       -- partial update
  DELETE /executions/{execution_id}                       -- delete; id goes to the ledger
  POST   /executions/{execution_id}/items                 -- add item
  PATCH  /executions/{execution_id}/items/{item_id}       -- edit item
  DELETE /executions/{execution_id}/items/{item_id}       -- remove item
  POST   /executions/{execution_id}/items/{item_id}/toggle -- flip compliance
  POST   /executions/{execution_id}/findings              -- add finding (next number)
  PATCH  /executions/{execution_id}/findings/{finding_id} -- edit finding
  DELETE /executions/{execution_id}/findings/{finding_id} -- remove finding (no renumbering)

All routes require the "checklists" permission.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter
from api.models import (
    ChecklistItemCreate,
    ChecklistItemPatch,
    ExecutionCreate,
    ExecutionPatch,
    FindingCreate,
    FindingPatch,
)
from api.routes.v1.common import get_stores, require_nested, require_record
from auth.dependencies import require_admin, require_permission
from core.models import ChecklistExecution, ChecklistItem, Finding
from stores.views import FindingOption, available_findings

router = APIRouter(dependencies=[Depends(require_permission("checklists"))])


# ---------------------------------------------------------------------------
# Collection and store-level routes
# ---------------------------------------------------------------------------


@limiter.limit("60/minute")
@router.get("/executions", response_model=list[ChecklistExecution])
def list_executions(request: Request) -> list[ChecklistExecution]:
    return list(get_stores(request).executions.list())


@limiter.limit("30/minute")
@router.post("/executions", response_model=ChecklistExecution, status_code=201)
def create_execution(request: Request, body: ExecutionCreate) -> ChecklistExecution:
    return get_stores(request).executions.add(body.model_dump())


@limiter.limit("60/minute")
@router.get("/executions/available-findings", response_model=list[FindingOption])
def list_available_findings(request: Request) -> list[FindingOption]:
    """Findings that corrective actions can be linked to."""
    return available_findings(get_stores(request).executions.list())


@router.post(
    "/executions/restore-defaults",
    response_model=list[ChecklistExecution],
    dependencies=[Depends(require_admin)],
)
def restore_default_executions(request: Request) -> list[ChecklistExecution]:
    """Replace the collection with the built-in executions the user has not deleted."""
    return list(get_stores(request).executions.restore_defaults())


@router.get("/executions/deleted-ledger", response_model=list[int])
def get_deleted_ledger(request: Request) -> list[int]:
    return get_stores(request).executions.deleted_ids()


@router.delete("/executions/deleted-ledger", status_code=204, dependencies=[Depends(require_admin)])
def clear_deleted_ledger(request: Request) -> Response:
    get_stores(request).executions.clear_deleted_ledger()
    return Response(status_code=204)


@router.post("/executions/clear", status_code=204, dependencies=[Depends(require_admin)])
def clear_executions(request: Request) -> Response:
    get_stores(request).executions.clear_all()
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Single execution
# ---------------------------------------------------------------------------


@limiter.limit("60/minute")
@router.get("/executions/{execution_id}", response_model=ChecklistExecution)
def get_execution(request: Request, execution_id: int) -> ChecklistExecution:
    return require_record(get_stores(request).executions, execution_id, "Execution")


@limiter.limit("30/minute")
@router.patch("/executions/{execution_id}", response_model=ChecklistExecution)
def update_execution(request: Request, execution_id: int, body: ExecutionPatch) -> ChecklistExecution:
    store = get_stores(request).executions
    require_record(store, execution_id, "Execution")
    store.update(execution_id, body.changes())
    return store.get(execution_id)


@limiter.limit("30/minute")
@router.delete("/executions/{execution_id}", status_code=204)
def delete_execution(request: Request, execution_id: int) -> Response:
    store = get_stores(request).executions
    require_record(store, execution_id, "Execution")
    store.remove(execution_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Checklist items
# ---------------------------------------------------------------------------


@limiter.limit("30/minute")
@router.post("/executions/{execution_id}/items", response_model=ChecklistItem, status_code=201)
def add_item(request: Request, execution_id: int, body: ChecklistItemCreate) -> ChecklistItem:
    store = get_stores(request).executions
    require_record(store, execution_id, "Execution")
    return store.add_item(execution_id, body.model_dump())


@limiter.limit("30/minute")
@router.patch("/executions/{execution_id}/items/{item_id}", response_model=ChecklistItem)
def update_item(request: Request, execution_id: int, item_id: int, body: ChecklistItemPatch) -> ChecklistItem:
    store = get_stores(request).executions
    require_nested(require_record(store, execution_id, "Execution"), "items", item_id, "Checklist item")
    store.update_item(execution_id, item_id, body.changes())
    return require_nested(store.get(execution_id), "items", item_id, "Checklist item")


@limiter.limit("30/minute")
@router.delete("/executions/{execution_id}/items/{item_id}", status_code=204)
def delete_item(request: Request, execution_id: int, item_id: int) -> Response:
    store = get_stores(request).executions
    require_nested(require_record(store, execution_id, "Execution"), "items", item_id, "Checklist item")
    store.remove_item(execution_id, item_id)
    return Response(status_code=204)


@limiter.limit("30/minute")
@router.post("/executions/{execution_id}/items/{item_id}/toggle", response_model=ChecklistItem)
def toggle_item(request: Request, execution_id: int, item_id: int) -> ChecklistItem:
    store = get_stores(request).executions
    require_nested(require_record(store, execution_id, "Execution"), "items", item_id, "Checklist item")
    store.toggle_compliance(execution_id, item_id)
    return require_nested(store.get(execution_id), "items", item_id, "Checklist item")


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------


@limiter.limit("30/minute")
@router.post("/executions/{execution_id}/findings", response_model=Finding, status_code=201)
def add_finding(request: Request, execution_id: int, body: FindingCreate) -> Finding:
    store = get_stores(request).executions
    require_record(store, execution_id, "Execution")
    return store.add_finding(execution_id, body.model_dump())


@limiter.limit("30/minute")
@router.patch("/executions/{execution_id}/findings/{finding_id}", response_model=Finding)
def update_finding(request: Request, execution_id: int, finding_id: int, body: FindingPatch) -> Finding:
    store = get_stores(request).executions
    require_nested(require_record(store, execution_id, "Execution"), "findings", finding_id, "Finding")
    store.update_finding(execution_id, finding_id, body.changes())
    return require_nested(store.get(execution_id), "findings", finding_id, "Finding")


@limiter.limit("30/minute")
@router.delete("/executions/{execution_id}/findings/{finding_id}", status_code=204)
def delete_finding(request: Request, execution_id: int, finding_id: int) -> Response:
    store = get_stores(request).executions
    require_nested(require_record(store, execution_id, "Execution"), "findings", finding_id, "Finding")
    store.remove_finding(execution_id, finding_id)
    return Response(status_code=204)
