"""
core/models.py -- Domain dataclasses for Audit Desk.

Pure data containers with zero logic. Id assignment, creation stamps, nested
numbering and persistence all live in stores/engine.py; per-entity rules
live in stores/entities.py.

Records are frozen: callers get value snapshots, and the stores replace a
record with a merged copy instead of mutating it. Nested collections are
tuples for the same reason.

Denormalized references (audit_name, finding_description, Audit.audit_type)
are copies taken when the link was made. They are never refreshed, so they
may go stale if the source record is renamed or deleted afterwards.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AuditStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"


class FindingSeverity(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class ActionPriority(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class ActionStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    regularized = "regularized"
    verified = "verified"


class ReportStatus(str, Enum):
    draft = "draft"
    in_review = "in_review"
    approved = "approved"
    final = "final"


class ReportSeverity(str, Enum):
    critical = "critical"
    major = "major"
    minor = "minor"


# ---------------------------------------------------------------------------
# Audit types and audits
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditType:
    """A category of audit (security, HR, finance ...).

    Audits reference a type by its name string, not by id.
    """

    id: int
    name: str
    created_at: datetime
    description: str = ""
    color: str = "#1976d2"
    active: bool = True


@dataclass(frozen=True)
class Audit:
    """A scheduled or completed audit engagement.

    audit_type is a free string (normally an AuditType name). Deleting an
    audit never touches executions, actions or reports that point at it.
    """

    id: int
    name: str
    start_date: datetime
    end_date: datetime
    audit_type: str = ""
    plan_year: int = 0
    auditor: str = ""
    status: AuditStatus = AuditStatus.pending
    description: str = ""
    scope: str = ""
    department: str = ""
    procedures: str = ""
    observations: Optional[str] = None
    recommendations: Optional[str] = None


# ---------------------------------------------------------------------------
# Checklist executions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChecklistItem:
    id: int
    description: str
    compliant: bool = False
    observations: str = ""
    evidence: str = ""


@dataclass(frozen=True)
class Finding:
    """A finding raised while executing a checklist.

    number is the human-facing sequence within the parent execution. It is
    assigned once and never renumbered, so gaps appear after deletions.
    """

    id: int
    number: int
    description: str
    severity: FindingSeverity = FindingSeverity.low
    recommendation: str = ""


@dataclass(frozen=True)
class ChecklistExecution:
    id: int
    created_at: datetime
    # Derived from audit_name or category on every add/update.
    name: str = ""
    category: str = ""
    description: str = ""
    status: str = "active"
    audit_id: Optional[int] = None
    audit_name: Optional[str] = None
    items: tuple[ChecklistItem, ...] = ()
    findings: tuple[Finding, ...] = ()
    observations: Optional[str] = None
    recommendations: Optional[str] = None


# ---------------------------------------------------------------------------
# Corrective actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FindingRef:
    """Composite key of a Finding: (parent execution id, finding id)."""

    execution_id: int
    finding_id: int

    @property
    def composite_id(self) -> str:
        return f"{self.execution_id}-{self.finding_id}"


@dataclass(frozen=True)
class CorrectiveAction:
    """Follow-up work tracked against an audit finding.

    progress is a percentage (0-100); the range is enforced at the edit
    boundary (api/models.py), not here.
    """

    id: int
    title: str
    created_at: datetime
    due_date: datetime
    description: str = ""
    audit_id: Optional[int] = None
    audit_name: str = ""
    finding_ref: Optional[FindingRef] = None
    finding_description: str = ""
    responsible: str = ""
    priority: ActionPriority = ActionPriority.medium
    status: ActionStatus = ActionStatus.pending
    completed_at: Optional[datetime] = None
    progress: int = 0
    notes: str = ""
    resources: str = ""
    comments: str = ""


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReportFinding:
    id: int
    number: int
    description: str
    severity: ReportSeverity = ReportSeverity.minor
    recommendation: str = ""
    due_date: Optional[datetime] = None


@dataclass(frozen=True)
class Report:
    id: int
    title: str
    created_at: datetime
    audit_id: Optional[int] = None
    audit_name: str = ""
    reviewed_at: Optional[datetime] = None
    status: ReportStatus = ReportStatus.draft
    summary: str = ""
    scope: str = ""
    methodology: str = ""
    conclusions: str = ""
    recommendations: str = ""
    observations: str = ""
    findings: tuple[ReportFinding, ...] = ()
