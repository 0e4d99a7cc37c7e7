"""
stores/entities.py -- The five Audit Desk stores.

Each store is the generic EntityStore with a fixed StoreConfig plus a few
entity-specific helpers. open_stores() builds all five over one backend and
one clock; the API lifespan and the CLI both go through it.

Usage:
    registry = open_stores(open_backend("memory://"))
    registry.audits.add({...})
    registry.executions.toggle_compliance(1, 2)
    registry.by_name("audit_reports").list()
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Optional

from core.config import utc_now
from core.models import (
    Audit,
    AuditType,
    ChecklistExecution,
    ChecklistItem,
    CorrectiveAction,
    Finding,
    Report,
    ReportFinding,
)
from storage.backend import KeyValueBackend
from stores import seed
from stores.engine import Clock, EntityStore, NestedCollection, StoreConfig

AUDIT_TYPES = "audit_types"
AUDITS = "audits"
CHECKLIST_EXECUTIONS = "checklist_executions"
CORRECTIVE_ACTIONS = "corrective_actions"
AUDIT_REPORTS = "audit_reports"

STORE_NAMES = (AUDIT_TYPES, AUDITS, CHECKLIST_EXECUTIONS, CORRECTIVE_ACTIONS, AUDIT_REPORTS)


# ---------------------------------------------------------------------------
# Audit types
# ---------------------------------------------------------------------------


class AuditTypeStore(EntityStore[AuditType]):
    def __init__(self, backend: KeyValueBackend, clock: Clock = utc_now) -> None:
        config = StoreConfig(key=AUDIT_TYPES, entity_type=AuditType, seed=seed.audit_types)
        super().__init__(config, backend, clock)

    def toggle_active(self, type_id: int) -> None:
        current = self.get(type_id)
        if current is not None:
            self.update(type_id, {"active": not current.active})

    def active_types(self) -> tuple[AuditType, ...]:
        return tuple(t for t in self.list() if t.active)


# ---------------------------------------------------------------------------
# Audits
# ---------------------------------------------------------------------------


class AuditStore(EntityStore[Audit]):
    def __init__(self, backend: KeyValueBackend, clock: Clock = utc_now) -> None:
        config = StoreConfig(key=AUDITS, entity_type=Audit, seed=seed.audits, created_field=None)
        super().__init__(config, backend, clock)


# ---------------------------------------------------------------------------
# Checklist executions
# ---------------------------------------------------------------------------


def execution_name(audit_name: Optional[str], category: str) -> str:
    """Display name of a checklist execution."""
    if audit_name:
        return f"Execution - {audit_name}"
    if category:
        return f"Execution - {category}"
    return "Audit Execution"


def _name_execution(execution: ChecklistExecution) -> ChecklistExecution:
    return replace(execution, name=execution_name(execution.audit_name, execution.category))


class ChecklistExecutionStore(EntityStore[ChecklistExecution]):
    """Checklist executions with nested items and findings.

    The only store with a deleted-ids ledger: restore_defaults() brings back
    seed executions the user did not delete.
    """

    def __init__(self, backend: KeyValueBackend, clock: Clock = utc_now) -> None:
        config = StoreConfig(
            key=CHECKLIST_EXECUTIONS,
            entity_type=ChecklistExecution,
            seed=seed.checklist_executions,
            nested=(
                NestedCollection("items", ChecklistItem),
                NestedCollection("findings", Finding, sequence_field="number"),
            ),
            track_deletions=True,
            normalize=_name_execution,
        )
        super().__init__(config, backend, clock)

    def add_item(self, execution_id: int, data: Mapping[str, Any]) -> Optional[ChecklistItem]:
        return self.add_nested(execution_id, "items", data)

    def update_item(self, execution_id: int, item_id: int, changes: Mapping[str, Any]) -> None:
        self.update_nested(execution_id, "items", item_id, changes)

    def remove_item(self, execution_id: int, item_id: int) -> None:
        self.remove_nested(execution_id, "items", item_id)

    def toggle_compliance(self, execution_id: int, item_id: int) -> None:
        execution = self.get(execution_id)
        if execution is None:
            return
        for item in execution.items:
            if item.id == item_id:
                self.update_item(execution_id, item_id, {"compliant": not item.compliant})
                return

    def add_finding(self, execution_id: int, data: Mapping[str, Any]) -> Optional[Finding]:
        return self.add_nested(execution_id, "findings", data)

    def update_finding(self, execution_id: int, finding_id: int, changes: Mapping[str, Any]) -> None:
        self.update_nested(execution_id, "findings", finding_id, changes)

    def remove_finding(self, execution_id: int, finding_id: int) -> None:
        self.remove_nested(execution_id, "findings", finding_id)


# ---------------------------------------------------------------------------
# Corrective actions
# ---------------------------------------------------------------------------


class CorrectiveActionStore(EntityStore[CorrectiveAction]):
    def __init__(self, backend: KeyValueBackend, clock: Clock = utc_now) -> None:
        config = StoreConfig(key=CORRECTIVE_ACTIONS, entity_type=CorrectiveAction, seed=seed.corrective_actions)
        super().__init__(config, backend, clock)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class ReportStore(EntityStore[Report]):
    def __init__(self, backend: KeyValueBackend, clock: Clock = utc_now) -> None:
        config = StoreConfig(
            key=AUDIT_REPORTS,
            entity_type=Report,
            seed=seed.reports,
            nested=(NestedCollection("findings", ReportFinding, sequence_field="number"),),
        )
        super().__init__(config, backend, clock)

    def add_finding(self, report_id: int, data: Mapping[str, Any]) -> Optional[ReportFinding]:
        return self.add_nested(report_id, "findings", data)

    def update_finding(self, report_id: int, finding_id: int, changes: Mapping[str, Any]) -> None:
        self.update_nested(report_id, "findings", finding_id, changes)

    def remove_finding(self, report_id: int, finding_id: int) -> None:
        self.remove_nested(report_id, "findings", finding_id)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@dataclass
class StoreRegistry:
    """All five stores sharing one backend."""

    audit_types: AuditTypeStore
    audits: AuditStore
    executions: ChecklistExecutionStore
    actions: CorrectiveActionStore
    reports: ReportStore

    def all(self) -> dict[str, EntityStore]:
        return {
            AUDIT_TYPES: self.audit_types,
            AUDITS: self.audits,
            CHECKLIST_EXECUTIONS: self.executions,
            CORRECTIVE_ACTIONS: self.actions,
            AUDIT_REPORTS: self.reports,
        }

    def by_name(self, name: str) -> EntityStore:
        try:
            return self.all()[name]
        except KeyError:
            raise KeyError(f"unknown store {name!r}; expected one of {', '.join(STORE_NAMES)}") from None


def open_stores(backend: KeyValueBackend, clock: Clock = utc_now) -> StoreRegistry:
    """Build every store over backend. Nothing is read until first use."""
    return StoreRegistry(
        audit_types=AuditTypeStore(backend, clock),
        audits=AuditStore(backend, clock),
        executions=ChecklistExecutionStore(backend, clock),
        actions=CorrectiveActionStore(backend, clock),
        reports=ReportStore(backend, clock),
    )
