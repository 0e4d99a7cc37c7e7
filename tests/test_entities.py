"""
tests/test_entities.py -- Tests for the five Audit Desk stores.

Covers the entity-specific rules layered on the generic engine:
  - seed contents on first run
  - audit type activation toggle
  - execution naming, checklist items, compliance toggle, findings numbering
  - the executions deleted-ids ledger and restore_defaults
  - report findings
  - StoreRegistry lookup by storage name
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.models import ActionStatus, AuditStatus, FindingSeverity, ReportSeverity
from storage.backend import MemoryBackend
from stores import seed
from stores.entities import STORE_NAMES, execution_name, open_stores


class TestSeeds:
    def test_first_run_loads_every_seed(self, stores) -> None:
        """Each store's first list() yields its seed set."""
        assert len(stores.audit_types.list()) == 6
        assert [a.status for a in stores.audits.list()] == [AuditStatus.completed, AuditStatus.in_progress]
        assert [e.id for e in stores.executions.list()] == [1, 2]
        assert len(stores.actions.list()) == 3
        assert [r.id for r in stores.reports.list()] == [1, 2]

    def test_seed_execution_persisted_blob_equals_seed(self, stores, memory_backend) -> None:
        stores.executions.list()
        stored = stores.executions.decode(memory_backend.get("checklist_executions_data"))
        assert stored == seed.checklist_executions()
        assert memory_backend.get("checklist_executions_initialized") == "true"

    def test_empty_action_store_counts_from_one(self) -> None:
        """Initialized corrective-action store with no data: ids 1 then 2."""
        backend = MemoryBackend({"corrective_actions_initialized": "true"})
        actions = open_stores(backend).actions
        due = datetime(2025, 6, 1, tzinfo=timezone.utc)
        assert actions.add({"title": "First", "due_date": due}).id == 1
        assert actions.add({"title": "Second", "due_date": due}).id == 2


class TestAuditTypes:
    def test_toggle_active(self, stores) -> None:
        """toggle_active flips the flag; active_types follows it."""
        assert 6 not in [t.id for t in stores.audit_types.active_types()]
        stores.audit_types.toggle_active(6)
        assert stores.audit_types.get(6).active is True
        stores.audit_types.toggle_active(1)
        assert 1 not in [t.id for t in stores.audit_types.active_types()]

    def test_toggle_missing_is_noop(self, stores) -> None:
        before = stores.audit_types.list()
        stores.audit_types.toggle_active(99)
        assert stores.audit_types.list() == before

    def test_created_at_from_clock(self, stores, fixed_clock) -> None:
        created = stores.audit_types.add({"name": "IT", "color": "#000"})
        assert created.created_at == fixed_clock()
        assert created.id == 7


class TestAudits:
    def test_audits_have_no_creation_stamp(self, stores) -> None:
        """Audits are added with the caller's dates only."""
        start = datetime(2025, 2, 1, tzinfo=timezone.utc)
        created = stores.audits.add(
            {"name": "Finance Audit", "audit_type": "Finance", "start_date": start, "end_date": start}
        )
        assert created.id == 3
        assert not hasattr(created, "created_at")


class TestExecutions:
    def test_name_derived_from_audit_name(self) -> None:
        assert execution_name("Security Audit", "Security") == "Execution - Security Audit"
        assert execution_name(None, "Quality") == "Execution - Quality"
        assert execution_name("", "") == "Audit Execution"

    def test_name_follows_updates(self, stores) -> None:
        """The display name is recomputed whenever audit_name or category change."""
        created = stores.executions.add({"category": "Quality"})
        assert created.name == "Execution - Quality"
        stores.executions.update(created.id, {"audit_name": "Quality Audit 2025"})
        assert stores.executions.get(created.id).name == "Execution - Quality Audit 2025"

    def test_client_name_is_overwritten(self, stores) -> None:
        created = stores.executions.add({"name": "custom", "category": "Finance"})
        assert created.name == "Execution - Finance"

    def test_add_with_findings_numbers_them(self, stores, fixed_clock) -> None:
        created = stores.executions.add(
            {
                "category": "Ops",
                "items": [{"description": "Check A"}, {"description": "Check B", "compliant": True}],
                "findings": [
                    {"description": "Gap one", "severity": "high"},
                    {"description": "Gap two"},
                ],
            }
        )
        assert [(i.id, i.compliant) for i in created.items] == [(1, False), (2, True)]
        assert [(f.id, f.number, f.severity) for f in created.findings] == [
            (1, 1, FindingSeverity.high),
            (2, 2, FindingSeverity.low),
        ]
        assert created.created_at == fixed_clock()

    def test_toggle_compliance(self, stores) -> None:
        stores.executions.toggle_compliance(1, 2)
        assert stores.executions.get(1).items[1].compliant is True
        stores.executions.toggle_compliance(1, 2)
        assert stores.executions.get(1).items[1].compliant is False

    def test_item_crud(self, stores) -> None:
        item = stores.executions.add_item(2, {"description": "Are contracts signed?"})
        assert item.id == 2
        stores.executions.update_item(2, item.id, {"evidence": "Contract archive"})
        assert stores.executions.get(2).items[-1].evidence == "Contract archive"
        stores.executions.remove_item(2, item.id)
        assert [i.id for i in stores.executions.get(2).items] == [1]

    def test_finding_numbers_leave_gaps(self, stores) -> None:
        """Seed execution 1 has finding #1; add #2 and #3, delete #2, add -> #4."""
        stores.executions.add_finding(1, {"description": "second"})
        stores.executions.add_finding(1, {"description": "third"})
        stores.executions.remove_finding(1, 2)
        added = stores.executions.add_finding(1, {"description": "fourth"})
        assert added.number == 4, f"Expected #4, got #{added.number}"
        assert [f.number for f in stores.executions.get(1).findings] == [1, 3, 4]

    def test_update_finding(self, stores) -> None:
        stores.executions.update_finding(1, 1, {"severity": FindingSeverity.high})
        assert stores.executions.get(1).findings[0].severity is FindingSeverity.high


class TestExecutionLedger:
    def test_deleted_seed_execution_is_not_restored(self, stores) -> None:
        stores.executions.remove(1)
        restored = stores.executions.restore_defaults()
        assert [e.id for e in restored] == [2]
        assert stores.executions.deleted_ids() == [1]

    def test_user_execution_with_findings_stays_deleted(self, stores) -> None:
        """An execution created with two findings and then deleted stays deleted after restore."""
        created = stores.executions.add(
            {"category": "Temp", "findings": [{"description": "a"}, {"description": "b"}]}
        )
        stores.executions.remove(created.id)
        restored = stores.executions.restore_defaults()
        assert created.id not in [e.id for e in restored]
        assert created.id in stores.executions.deleted_ids()

    def test_restore_replaces_user_records(self, stores) -> None:
        """restore_defaults replaces the whole collection with the filtered seed."""
        stores.executions.add({"category": "Mine"})
        assert [e.id for e in stores.executions.restore_defaults()] == [1, 2]

    def test_clear_all_erases_ledger_and_reseeds(self, memory_backend) -> None:
        registry = open_stores(memory_backend)
        registry.executions.remove(1)
        registry.executions.clear_all()
        assert memory_backend.get("checklist_executions_deleted_ids") is None
        fresh = open_stores(memory_backend)
        assert [e.id for e in fresh.executions.list()] == [1, 2], "First-run path must reseed after clear_all"

    def test_only_executions_keep_a_ledger(self, stores) -> None:
        assert "deleted_ids" in stores.executions.describe()
        assert "deleted_ids" not in stores.audits.describe()


class TestActionsAndReports:
    def test_action_defaults(self, stores) -> None:
        due = datetime(2025, 6, 1, tzinfo=timezone.utc)
        created = stores.actions.add({"title": "Rotate keys", "due_date": due})
        assert created.id == 4
        assert created.status is ActionStatus.pending
        assert created.progress == 0
        assert created.finding_ref is None

    def test_report_findings(self, stores) -> None:
        added = stores.reports.add_finding(2, {"description": "No onboarding checklist", "severity": "major"})
        assert (added.id, added.number, added.severity) == (2, 2, ReportSeverity.major)
        stores.reports.update_finding(2, 2, {"recommendation": "Write one"})
        assert stores.reports.get(2).findings[-1].recommendation == "Write one"
        stores.reports.remove_finding(2, 1)
        assert [f.number for f in stores.reports.get(2).findings] == [2]


class TestRegistry:
    def test_by_name(self, stores) -> None:
        for name in STORE_NAMES:
            assert stores.by_name(name).name == name

    def test_unknown_name_raises(self, stores) -> None:
        with pytest.raises(KeyError, match="unknown store"):
            stores.by_name("assets")
