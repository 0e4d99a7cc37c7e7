"""
API request and response models for Audit Desk REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in core/models.py, which
own the internal domain representation. Request models are the edit
boundary: blank required strings, malformed colors, out-of-range progress and
unknown enum values are rejected here with a 422 before any store is touched.

Responses reuse the domain dataclasses directly (FastAPI serializes them);
only envelopes that have no domain counterpart are defined here.

Create models map to store.add(body.model_dump()); patch models map to
store.update(id, body.changes()), so only fields the client sent are merged.
"""

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator

from core.config import as_utc
from core.sampling import MAX_POPULATION
from core.models import (
    ActionPriority,
    ActionStatus,
    AuditStatus,
    FindingSeverity,
    ReportSeverity,
    ReportStatus,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HEX_COLOR_PATTERN = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"
COMPOSITE_FINDING_PATTERN = r"^\d+-\d+$"

# Required free text: stripped by model_config, then at least one character.
_Name = Annotated[str, Field(min_length=1, max_length=255)]
_Text = Annotated[str, Field(max_length=10_000)]
# Client timestamps without an offset are read as UTC, so stored values can
# always be compared with the seed data and the clock.
_Timestamp = Annotated[datetime, AfterValidator(as_utc)]


class _Request(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


class _Patch(_Request):
    """Partial update. Fields the client did not send, or sent as null, are left alone."""

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    name: str
    email: str
    role: str
    permissions: list[str]


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str
    expires_in: int
    user: UserResponse


# ---------------------------------------------------------------------------
# Audit types
# ---------------------------------------------------------------------------


class AuditTypeCreate(_Request):
    name: _Name
    description: _Text = ""
    color: str = Field(default="#1976d2", pattern=HEX_COLOR_PATTERN)
    active: bool = True


class AuditTypePatch(_Patch):
    name: Optional[_Name] = None
    description: Optional[_Text] = None
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    active: Optional[bool] = None


# ---------------------------------------------------------------------------
# Audits
# ---------------------------------------------------------------------------


class AuditCreate(_Request):
    name: _Name
    audit_type: _Name
    plan_year: int = Field(ge=1900, le=2200)
    start_date: _Timestamp
    end_date: _Timestamp
    auditor: _Name
    status: AuditStatus = AuditStatus.pending
    description: _Text = ""
    scope: _Text = ""
    department: _Text = ""
    procedures: _Text = ""
    observations: Optional[_Text] = None
    recommendations: Optional[_Text] = None

    @model_validator(mode="after")
    def check_dates(self) -> "AuditCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class AuditPatch(_Patch):
    name: Optional[_Name] = None
    audit_type: Optional[_Name] = None
    plan_year: Optional[int] = Field(default=None, ge=1900, le=2200)
    start_date: Optional[_Timestamp] = None
    end_date: Optional[_Timestamp] = None
    auditor: Optional[_Name] = None
    status: Optional[AuditStatus] = None
    description: Optional[_Text] = None
    scope: Optional[_Text] = None
    department: Optional[_Text] = None
    procedures: Optional[_Text] = None
    observations: Optional[_Text] = None
    recommendations: Optional[_Text] = None


# ---------------------------------------------------------------------------
# Checklist executions
# ---------------------------------------------------------------------------


class ChecklistItemCreate(_Request):
    description: _Name
    compliant: bool = False
    observations: _Text = ""
    evidence: _Text = ""


class ChecklistItemPatch(_Patch):
    description: Optional[_Name] = None
    compliant: Optional[bool] = None
    observations: Optional[_Text] = None
    evidence: Optional[_Text] = None


class FindingCreate(_Request):
    description: _Name
    severity: FindingSeverity = FindingSeverity.low
    recommendation: _Text = ""


class FindingPatch(_Patch):
    description: Optional[_Name] = None
    severity: Optional[FindingSeverity] = None
    recommendation: Optional[_Text] = None


class ExecutionCreate(_Request):
    """New checklist execution. The name is derived by the store, never sent."""

    category: _Text = ""
    description: _Text = ""
    status: str = Field(default="active", max_length=50)
    audit_id: Optional[int] = None
    audit_name: Optional[_Text] = None
    items: list[ChecklistItemCreate] = Field(default_factory=list)
    findings: list[FindingCreate] = Field(default_factory=list)
    observations: Optional[_Text] = None
    recommendations: Optional[_Text] = None


class ExecutionPatch(_Patch):
    category: Optional[_Text] = None
    description: Optional[_Text] = None
    status: Optional[str] = Field(default=None, max_length=50)
    audit_id: Optional[int] = None
    audit_name: Optional[_Text] = None
    observations: Optional[_Text] = None
    recommendations: Optional[_Text] = None


# ---------------------------------------------------------------------------
# Corrective actions
# ---------------------------------------------------------------------------


class CorrectiveActionCreate(_Request):
    """finding_ref is the composite "<execution_id>-<finding_id>" string."""

    title: _Name
    due_date: _Timestamp
    description: _Text = ""
    audit_id: Optional[int] = None
    audit_name: _Text = ""
    finding_ref: Optional[str] = Field(default=None, pattern=COMPOSITE_FINDING_PATTERN)
    finding_description: _Text = ""
    responsible: _Text = ""
    priority: ActionPriority = ActionPriority.medium
    status: ActionStatus = ActionStatus.pending
    completed_at: Optional[_Timestamp] = None
    progress: int = Field(default=0, ge=0, le=100)
    notes: _Text = ""
    resources: _Text = ""
    comments: _Text = ""


class CorrectiveActionPatch(_Patch):
    title: Optional[_Name] = None
    due_date: Optional[_Timestamp] = None
    description: Optional[_Text] = None
    audit_id: Optional[int] = None
    audit_name: Optional[_Text] = None
    finding_ref: Optional[str] = Field(default=None, pattern=COMPOSITE_FINDING_PATTERN)
    finding_description: Optional[_Text] = None
    responsible: Optional[_Text] = None
    priority: Optional[ActionPriority] = None
    status: Optional[ActionStatus] = None
    completed_at: Optional[_Timestamp] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    notes: Optional[_Text] = None
    resources: Optional[_Text] = None
    comments: Optional[_Text] = None


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class ReportFindingCreate(_Request):
    description: _Name
    severity: ReportSeverity = ReportSeverity.minor
    recommendation: _Text = ""
    due_date: Optional[_Timestamp] = None


class ReportFindingPatch(_Patch):
    description: Optional[_Name] = None
    severity: Optional[ReportSeverity] = None
    recommendation: Optional[_Text] = None
    due_date: Optional[_Timestamp] = None


class ReportCreate(_Request):
    title: _Name
    audit_id: Optional[int] = None
    audit_name: _Text = ""
    reviewed_at: Optional[_Timestamp] = None
    status: ReportStatus = ReportStatus.draft
    summary: _Text = ""
    scope: _Text = ""
    methodology: _Text = ""
    conclusions: _Text = ""
    recommendations: _Text = ""
    observations: _Text = ""
    findings: list[ReportFindingCreate] = Field(default_factory=list)


class ReportPatch(_Patch):
    title: Optional[_Name] = None
    audit_id: Optional[int] = None
    audit_name: Optional[_Text] = None
    reviewed_at: Optional[_Timestamp] = None
    status: Optional[ReportStatus] = None
    summary: Optional[_Text] = None
    scope: Optional[_Text] = None
    methodology: Optional[_Text] = None
    conclusions: Optional[_Text] = None
    recommendations: Optional[_Text] = None
    observations: Optional[_Text] = None


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class IngestFileResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    size: int
    rows: int
    error: Optional[str] = None


class IngestResponse(BaseModel):
    """Response for POST /api/v1/ingest."""

    model_config = ConfigDict(frozen=True)

    files: list[IngestFileResult]
    errors: int
    table: list[dict[str, Any]] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class ActionDeadline(BaseModel):
    """An open corrective action and the whole days left until its due date."""

    model_config = ConfigDict(frozen=True)

    action_id: int
    title: str
    status: ActionStatus
    due_date: datetime
    days_remaining: int


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------


class SamplingRequest(_Request):
    """Population size N and the share of it to sample, in percent."""

    population: int = Field(ge=1, le=MAX_POPULATION)
    percentage: float = Field(gt=0, le=100)
