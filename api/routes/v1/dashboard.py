"""
api/routes/v1/dashboard.py -- Aggregated metrics endpoints.

  GET /dashboard            -- audit, finding and corrective action headline numbers
  GET /dashboard/deadlines  -- open corrective actions by days remaining
  GET /stores/status        -- per-store diagnostics (admin)

These are read-only aggregate routes -- no mutations here. Every value is
recomputed from the stores on each request.
"""

from fastapi import APIRouter, Depends, Request

from api.limiter import limiter
from api.models import ActionDeadline
from api.routes.v1.common import get_stores
from auth.dependencies import get_current_user, require_admin
from core.config import utc_now
from core.models import ActionStatus
from stores.views import DashboardMetrics, dashboard_metrics, days_remaining

# Router-level dependency enforces auth; the handlers do not repeat it.
router = APIRouter(dependencies=[Depends(get_current_user)])

_CLOSED = (ActionStatus.regularized, ActionStatus.verified)


@limiter.limit("60/minute")
@router.get("/dashboard", response_model=DashboardMetrics)
def get_dashboard(request: Request, recent: int = 3) -> DashboardMetrics:
    """Return headline metrics.

    Response:
      audits_by_status       -- {"pending": N, "in_progress": N, "completed": N}
      findings_by_severity   -- {"high": N, "medium": N, "low": N} across all executions
      actions_total / actions_regularized
      recent_audits          -- latest audits by start date with their finding counts
    """
    stores = get_stores(request)
    return dashboard_metrics(
        stores.audits.list(),
        stores.executions.list(),
        stores.actions.list(),
        limit=recent,
    )


@limiter.limit("60/minute")
@router.get("/dashboard/deadlines", response_model=list[ActionDeadline])
def get_deadlines(request: Request) -> list[ActionDeadline]:
    """Open corrective actions, soonest (or most overdue) first."""
    now = utc_now()
    rows = [
        ActionDeadline(
            action_id=action.id,
            title=action.title,
            status=action.status,
            due_date=action.due_date,
            days_remaining=days_remaining(action, now),
        )
        for action in get_stores(request).actions.list()
        if action.status not in _CLOSED
    ]
    return sorted(rows, key=lambda row: row.days_remaining)


@router.get("/stores/status", response_model=list[dict], dependencies=[Depends(require_admin)])
def get_store_status(request: Request) -> list[dict]:
    return [store.describe() for store in get_stores(request).all().values()]
