"""
stores/views.py -- Read-only projections across stores.

Every function here is pure: it takes record snapshots (tuples from
store.list()) and returns new values. Nothing is cached, so results always
reflect the records passed in. The API and CLI call these on every request.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.models import (
    ActionStatus,
    Audit,
    AuditStatus,
    AuditType,
    ChecklistExecution,
    CorrectiveAction,
    Finding,
    FindingRef,
    FindingSeverity,
)

NO_FINDINGS_TEXT = "No findings were recorded in this audit execution."
NO_RECOMMENDATIONS_TEXT = "No recommendations were recorded in this audit execution."


# ---------------------------------------------------------------------------
# View types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FindingOption:
    """One finding, flattened for a picker. composite_id is "<execution>-<finding>"."""

    composite_id: str
    number: int
    description: str
    recommendation: str
    severity: FindingSeverity
    execution_id: int
    execution_name: str


@dataclass(frozen=True)
class ReportSource:
    execution_id: int
    name: str
    category: str
    plan_year: int
    observations: Optional[str]
    recommendations: Optional[str]


@dataclass(frozen=True)
class ReportDraft:
    """Prefilled fields for a new report built from a checklist execution."""

    execution_id: int
    audit_id: Optional[int]
    audit_name: str
    title: str
    observations: str
    recommendations: str


@dataclass(frozen=True)
class RecentAudit:
    audit: Audit
    finding_count: int


@dataclass(frozen=True)
class DashboardMetrics:
    audits_total: int
    audits_by_status: dict[str, int]
    findings_total: int
    findings_by_severity: dict[str, int]
    actions_total: int
    actions_regularized: int
    actions_by_status: dict[str, int]
    recent_audits: tuple[RecentAudit, ...]


@dataclass(frozen=True)
class AuditTypeGroup:
    """Audits sharing one type string. audit_type is None when no such type exists."""

    type_name: str
    audit_type: Optional[AuditType]
    audits: tuple[Audit, ...]


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------


def available_findings(executions: Iterable[ChecklistExecution]) -> list[FindingOption]:
    """Every finding of every execution, in execution then finding order."""
    return [
        FindingOption(
            composite_id=FindingRef(execution.id, finding.id).composite_id,
            number=finding.number,
            description=finding.description,
            recommendation=finding.recommendation,
            severity=finding.severity,
            execution_id=execution.id,
            execution_name=execution.name,
        )
        for execution in executions
        for finding in execution.findings
    ]


def parse_composite_id(composite_id: str) -> Optional[FindingRef]:
    """Split "<execution>-<finding>" into a FindingRef; None if malformed."""
    execution_part, sep, finding_part = composite_id.partition("-")
    if not sep:
        return None
    try:
        return FindingRef(int(execution_part), int(finding_part))
    except ValueError:
        return None


def find_finding(
    executions: Iterable[ChecklistExecution], composite_id: str
) -> Optional[tuple[ChecklistExecution, Finding]]:
    ref = parse_composite_id(composite_id)
    if ref is None:
        return None
    for execution in executions:
        if execution.id != ref.execution_id:
            continue
        for finding in execution.findings:
            if finding.id == ref.finding_id:
                return execution, finding
    return None


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def _display_name(execution: ChecklistExecution) -> str:
    return execution.audit_name or execution.name


def report_sources(executions: Iterable[ChecklistExecution], year: int) -> list[ReportSource]:
    """Executions offered as the source of a new report.

    Executions carry no plan year of their own, so every row is labelled with
    the year the caller passes (normally the current one).
    """
    return [
        ReportSource(
            execution_id=execution.id,
            name=_display_name(execution),
            category=execution.category,
            plan_year=year,
            observations=execution.observations,
            recommendations=execution.recommendations,
        )
        for execution in executions
    ]


def draft_report_from_execution(execution: ChecklistExecution) -> ReportDraft:
    name = _display_name(execution)
    if execution.findings:
        observations = "".join(
            f"FINDING #{f.number}:\nDescription: {f.description}\nImpact: {f.severity.value}\n\n"
            for f in execution.findings
        )
        recommendations = "".join(
            f"RECOMMENDATION #{f.number}:\n{f.recommendation}\n\n" for f in execution.findings
        )
    else:
        observations = NO_FINDINGS_TEXT
        recommendations = NO_RECOMMENDATIONS_TEXT
    return ReportDraft(
        execution_id=execution.id,
        audit_id=execution.audit_id,
        audit_name=name,
        title=f"Report - {name}",
        observations=observations,
        recommendations=recommendations,
    )


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


def _counts(values: Iterable[str], keys: Iterable[str]) -> dict[str, int]:
    counter = Counter(values)
    return {key: counter.get(key, 0) for key in keys}


def dashboard_metrics(
    audits: Sequence[Audit],
    executions: Sequence[ChecklistExecution],
    actions: Sequence[CorrectiveAction],
    limit: int = 3,
) -> DashboardMetrics:
    """Headline numbers for the dashboard.

    Recent audits are the latest by start date; each one's finding count sums
    the findings of every execution linked to it through audit_id.
    """
    findings = [f for execution in executions for f in execution.findings]

    findings_per_audit: Counter[int] = Counter()
    for execution in executions:
        if execution.audit_id is not None:
            findings_per_audit[execution.audit_id] += len(execution.findings)

    recent = sorted(audits, key=lambda a: a.start_date, reverse=True)[: max(limit, 0)]

    return DashboardMetrics(
        audits_total=len(audits),
        audits_by_status=_counts((a.status.value for a in audits), (s.value for s in AuditStatus)),
        findings_total=len(findings),
        findings_by_severity=_counts((f.severity.value for f in findings), (s.value for s in FindingSeverity)),
        actions_total=len(actions),
        actions_regularized=sum(1 for a in actions if a.status is ActionStatus.regularized),
        actions_by_status=_counts((a.status.value for a in actions), (s.value for s in ActionStatus)),
        recent_audits=tuple(RecentAudit(audit, findings_per_audit.get(audit.id, 0)) for audit in recent),
    )


# ---------------------------------------------------------------------------
# Audit types
# ---------------------------------------------------------------------------


def audits_by_type(audits: Iterable[Audit], types: Iterable[AuditType]) -> list[AuditTypeGroup]:
    """Group audits by their type string, in first-seen order.

    The type string is matched against AuditType names. Audits whose type was
    renamed or deleted still get a group, with audit_type None.
    """
    by_name = {t.name: t for t in types}
    grouped: dict[str, list[Audit]] = {}
    for audit in audits:
        grouped.setdefault(audit.audit_type, []).append(audit)
    return [AuditTypeGroup(name, by_name.get(name), tuple(members)) for name, members in grouped.items()]


# ---------------------------------------------------------------------------
# Corrective actions
# ---------------------------------------------------------------------------


def days_remaining(action: CorrectiveAction, now: datetime) -> int:
    """Whole days from now until the due date, rounded up. Negative once overdue."""
    return math.ceil((action.due_date - now).total_seconds() / 86400)
