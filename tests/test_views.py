"""
tests/test_views.py -- Tests for the cross-store read projections in stores/views.py.

All inputs are the seed records (or small variations), so expected values
can be read straight off stores/seed.py.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from core.models import FindingRef, FindingSeverity
from stores import seed
from stores.views import (
    NO_FINDINGS_TEXT,
    NO_RECOMMENDATIONS_TEXT,
    audits_by_type,
    available_findings,
    dashboard_metrics,
    days_remaining,
    draft_report_from_execution,
    find_finding,
    parse_composite_id,
    report_sources,
)


class TestFindings:
    def test_available_findings_flattens_executions(self) -> None:
        options = available_findings(seed.checklist_executions())
        assert len(options) == 1, f"Seed has one finding, got {len(options)}"
        option = options[0]
        assert option.composite_id == "1-1"
        assert option.execution_name == "Execution - Information Security Audit"
        assert option.severity is FindingSeverity.medium

    def test_parse_composite_id(self) -> None:
        assert parse_composite_id("3-7") == FindingRef(3, 7)
        assert parse_composite_id("37") is None
        assert parse_composite_id("a-b") is None

    def test_find_finding(self) -> None:
        executions = seed.checklist_executions()
        execution, finding = find_finding(executions, "1-1")
        assert execution.id == 1
        assert finding.description == "No automatic backup policy"
        assert find_finding(executions, "2-1") is None
        assert find_finding(executions, "junk") is None


class TestReportDrafting:
    def test_draft_with_findings(self) -> None:
        draft = draft_report_from_execution(seed.checklist_executions()[0])
        assert draft.title == "Report - Information Security Audit"
        assert draft.audit_id == 1
        assert draft.observations == (
            "FINDING #1:\nDescription: No automatic backup policy\nImpact: medium\n\n"
        ), f"Unexpected observations: {draft.observations!r}"
        assert draft.recommendations == (
            "RECOMMENDATION #1:\nImplement automatic backups with notifications\n\n"
        )

    def test_draft_without_findings(self) -> None:
        draft = draft_report_from_execution(seed.checklist_executions()[1])
        assert draft.observations == NO_FINDINGS_TEXT
        assert draft.recommendations == NO_RECOMMENDATIONS_TEXT

    def test_draft_falls_back_to_execution_name(self) -> None:
        execution = replace(seed.checklist_executions()[1], audit_name=None, name="Execution - HR")
        assert draft_report_from_execution(execution).title == "Report - Execution - HR"

    def test_report_sources_use_given_year(self) -> None:
        sources = report_sources(seed.checklist_executions(), 2026)
        assert [s.plan_year for s in sources] == [2026, 2026]
        assert sources[1].name == "Human Resources Audit"


class TestDashboard:
    def test_metrics_from_seed(self) -> None:
        metrics = dashboard_metrics(seed.audits(), seed.checklist_executions(), seed.corrective_actions())
        assert metrics.audits_total == 2
        assert metrics.audits_by_status == {"pending": 0, "in_progress": 1, "completed": 1}
        assert metrics.findings_total == 1
        assert metrics.findings_by_severity == {"high": 0, "medium": 1, "low": 0}
        assert metrics.actions_total == 3
        assert metrics.actions_regularized == 1
        assert metrics.actions_by_status["in_progress"] == 1

    def test_recent_audits_latest_first_with_finding_counts(self) -> None:
        metrics = dashboard_metrics(seed.audits(), seed.checklist_executions(), seed.corrective_actions())
        assert [(r.audit.id, r.finding_count) for r in metrics.recent_audits] == [(1, 1), (2, 0)]

    def test_recent_limit(self) -> None:
        metrics = dashboard_metrics(seed.audits(), [], [], limit=1)
        assert len(metrics.recent_audits) == 1
        assert metrics.findings_total == 0

    def test_empty_inputs(self) -> None:
        metrics = dashboard_metrics([], [], [])
        assert metrics.audits_total == 0
        assert metrics.recent_audits == ()


class TestAuditTypes:
    def test_groups_by_type_string(self) -> None:
        groups = audits_by_type(seed.audits(), seed.audit_types())
        assert [g.type_name for g in groups] == ["Security", "Human Resources"]
        assert groups[0].audit_type.id == 1

    def test_missing_type_still_grouped(self) -> None:
        """Audits whose type was deleted keep a group with audit_type None."""
        groups = audits_by_type(seed.audits(), seed.audit_types()[2:])
        assert all(g.audit_type is None for g in groups)
        assert sum(len(g.audits) for g in groups) == 2


class TestDaysRemaining:
    def test_rounds_partial_days_up(self) -> None:
        action = seed.corrective_actions()[0]
        now = action.due_date - timedelta(days=1, hours=12)
        assert days_remaining(action, now) == 2

    def test_negative_when_overdue(self) -> None:
        action = seed.corrective_actions()[0]
        now = action.due_date + timedelta(days=1, hours=12)
        assert days_remaining(action, now) == -1

    def test_due_now_is_zero(self) -> None:
        action = seed.corrective_actions()[0]
        assert days_remaining(action, action.due_date) == 0
        assert days_remaining(action, datetime(2024, 3, 14, tzinfo=timezone.utc)) == 1
