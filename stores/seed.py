"""
stores/seed.py -- Built-in demo records, one factory per store.

A store loads these on its first-ever run (no data, no first-run marker).
The checklist execution seed is also the source for restore_defaults(),
minus whatever ids the deleted-ids ledger remembers.

Factories return fresh lists on every call so callers can never mutate a
shared module-level default.
"""

from datetime import datetime, timezone

from core.models import (
    ActionPriority,
    ActionStatus,
    Audit,
    AuditStatus,
    AuditType,
    ChecklistExecution,
    ChecklistItem,
    CorrectiveAction,
    Finding,
    FindingSeverity,
    Report,
    ReportFinding,
    ReportSeverity,
    ReportStatus,
)


def _day(value: str) -> datetime:
    """Midnight UTC of an ISO date string."""
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


_SECURITY_AUDIT = "Information Security Audit"
_HR_AUDIT = "Human Resources Audit"

_SECURITY_OBSERVATIONS = (
    "Critical vulnerabilities were found in the authentication system. Access logs "
    "are not being monitored adequately. Two-factor authentication must be implemented."
)
_SECURITY_RECOMMENDATIONS = (
    "Implement two-factor authentication on every critical system. Set up real-time "
    "log monitoring. Run security audits quarterly. Train staff in security best practices."
)
_HR_OBSERVATIONS = (
    "Personnel files are incomplete for 15% of staff. Hiring does not fully follow the "
    "established policies. Performance reviews are not documented."
)
_HR_RECOMMENDATIONS = (
    "Complete every missing personnel file within 30 days. Review and update the hiring "
    "process to ensure compliance. Introduce tracking of performance reviews. Train HR "
    "staff on the updated policies."
)


def audit_types() -> list[AuditType]:
    created = _day("2024-01-01")
    return [
        AuditType(1, "Security", created, "Physical and information security audits", "#1976d2", True),
        AuditType(2, "Human Resources", created, "HR process and labour compliance audits", "#dc004e", True),
        AuditType(3, "Finance", created, "Financial and internal control audits", "#388e3c", True),
        AuditType(4, "Operations", created, "Operational and production process audits", "#f57c00", True),
        AuditType(5, "Quality", created, "Quality management system audits", "#7b1fa2", True),
        AuditType(6, "Environmental", created, "Environmental compliance and sustainability audits", "#388e3c", False),
    ]


def audits() -> list[Audit]:
    return [
        Audit(
            id=1,
            name=_SECURITY_AUDIT,
            audit_type="Security",
            plan_year=2024,
            start_date=_day("2024-01-15"),
            end_date=_day("2024-01-20"),
            auditor="Juan Pérez",
            status=AuditStatus.completed,
            description="Security audit of the information systems",
            scope="IT department",
            department="School of Engineering",
            procedures=(
                "Security policy review, vulnerability analysis, penetration testing, "
                "access log review."
            ),
            observations=_SECURITY_OBSERVATIONS,
            recommendations=_SECURITY_RECOMMENDATIONS,
        ),
        Audit(
            id=2,
            name=_HR_AUDIT,
            audit_type="Human Resources",
            plan_year=2024,
            start_date=_day("2024-01-10"),
            end_date=_day("2024-01-25"),
            auditor="María García",
            status=AuditStatus.in_progress,
            description="Audit of HR processes",
            scope="HR department",
            department="School of Business Administration",
            procedures=(
                "Personnel file review, labour compliance checks, hiring process analysis, "
                "HR policy review."
            ),
            observations=_HR_OBSERVATIONS,
            recommendations=_HR_RECOMMENDATIONS,
        ),
    ]


def checklist_executions() -> list[ChecklistExecution]:
    return [
        ChecklistExecution(
            id=1,
            name=f"Execution - {_SECURITY_AUDIT}",
            created_at=_day("2024-01-01"),
            category="Security",
            description="Checklist for information security audits",
            status="active",
            audit_id=1,
            audit_name=_SECURITY_AUDIT,
            items=(
                ChecklistItem(1, "Is there a password policy?", True, "Policy correctly implemented", "Policy document"),
                ChecklistItem(2, "Are backups taken regularly?", False, "No automatic schedule", "Backup report"),
            ),
            findings=(
                Finding(
                    id=1,
                    number=1,
                    description="No automatic backup policy",
                    severity=FindingSeverity.medium,
                    recommendation="Implement automatic backups with notifications",
                ),
            ),
            observations=_SECURITY_OBSERVATIONS,
            recommendations=_SECURITY_RECOMMENDATIONS,
        ),
        ChecklistExecution(
            id=2,
            name=f"Execution - {_HR_AUDIT}",
            created_at=_day("2024-01-02"),
            category="Human Resources",
            description="Checklist for HR process audits",
            status="active",
            audit_id=2,
            audit_name=_HR_AUDIT,
            items=(
                ChecklistItem(1, "Is there a hiring policy?", True, "Clear, documented policy", "Policy manual"),
            ),
            findings=(),
            observations=_HR_OBSERVATIONS,
            recommendations=_HR_RECOMMENDATIONS,
        ),
    ]


def corrective_actions() -> list[CorrectiveAction]:
    return [
        CorrectiveAction(
            id=1,
            title="Implement password policy",
            created_at=_day("2024-01-15"),
            due_date=_day("2024-03-15"),
            description="Define strong password policies for every system",
            audit_id=1,
            audit_name=_SECURITY_AUDIT,
            finding_description="No password policy",
            responsible="IT department",
            priority=ActionPriority.high,
            status=ActionStatus.in_progress,
            progress=60,
            notes="Policies defined, rollout pending",
            resources="Development team, 2FA vendor",
            comments="Configuration finished on the main systems",
        ),
        CorrectiveAction(
            id=2,
            title="Update HR procedures",
            created_at=_day("2024-01-20"),
            due_date=_day("2024-04-20"),
            description="Review and update every HR department procedure",
            audit_id=2,
            audit_name=_HR_AUDIT,
            finding_description="Outdated hiring procedures",
            responsible="HR department",
            priority=ActionPriority.medium,
            status=ActionStatus.pending,
            progress=0,
            notes="Waiting for management approval",
            resources="HR team, legal counsel",
            comments="Waiting for management approval",
        ),
        CorrectiveAction(
            id=3,
            title="Establish backup verification process",
            created_at=_day("2024-01-20"),
            due_date=_day("2024-02-15"),
            completed_at=_day("2024-02-10"),
            description="Create a procedure to check backup integrity regularly",
            audit_id=1,
            audit_name=_SECURITY_AUDIT,
            finding_description="Backups not verified regularly",
            responsible="IT department",
            priority=ActionPriority.medium,
            status=ActionStatus.regularized,
            progress=100,
            notes="Process implemented and documented",
            resources="Operations staff",
            comments="Process implemented and documented",
        ),
    ]


def reports() -> list[Report]:
    return [
        Report(
            id=1,
            title=f"Report - {_SECURITY_AUDIT}",
            created_at=_day("2024-01-20"),
            audit_id=1,
            audit_name=_SECURITY_AUDIT,
            status=ReportStatus.approved,
            summary="Security audit of the company's information systems",
            scope="IT department, critical systems",
            methodology="Documentation review, interviews, technical testing",
            conclusions="Security vulnerabilities were found that need immediate attention",
            recommendations="Implement password policies, update systems, train staff",
            observations="IT staff are committed to improving security",
            findings=(
                ReportFinding(
                    id=1,
                    number=1,
                    description="No strong password policy",
                    severity=ReportSeverity.critical,
                    recommendation="Implement password policies with minimum requirements",
                    due_date=_day("2024-03-01"),
                ),
                ReportFinding(
                    id=2,
                    number=2,
                    description="Operating systems out of date",
                    severity=ReportSeverity.major,
                    recommendation="Upgrade every operating system to a supported release",
                    due_date=_day("2024-04-01"),
                ),
            ),
        ),
        Report(
            id=2,
            title=f"Report - {_HR_AUDIT}",
            created_at=_day("2024-01-25"),
            audit_id=2,
            audit_name=_HR_AUDIT,
            status=ReportStatus.in_review,
            summary="Audit of HR department processes and procedures",
            scope="HR department, hiring and management processes",
            methodology="Documentation review, interviews, process observation",
            conclusions="HR processes are well documented but need some improvements",
            recommendations="Introduce applicant tracking, improve review documentation",
            observations="The HR department shows good organization and commitment",
            findings=(
                ReportFinding(
                    id=1,
                    number=1,
                    description="No applicant tracking system",
                    severity=ReportSeverity.minor,
                    recommendation="Adopt applicant management software",
                    due_date=_day("2024-05-01"),
                ),
            ),
        ),
    ]
