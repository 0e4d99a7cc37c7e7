"""
api/routes/v1/reports.py -- Audit reports, drafting and export.

Routes (static paths registered before /reports/{report_id}):
  GET    /reports                                   -- list
  POST   /reports                                   -- create (findings optional)
  GET    /reports/sources?year=YYYY                 -- executions a report can be drafted from
  GET    /reports/draft/{execution_id}              -- prefilled fields from one execution
  POST   /reports/clear                             -- delete everything (admin)
  GET    /reports/{report_id}                       -- one report
  PATCH  /reports/{report_id}                       -- partial update
  DELETE /reports/{report_id}                       -- delete
  GET    /reports/{report_id}/export.pdf            -- PDF download
  GET    /reports/{report_id}/export.md             -- Markdown download
  POST   /reports/{report_id}/findings              -- add finding (next number)
  PATCH  /reports/{report_id}/findings/{finding_id} -- edit finding
  DELETE /reports/{report_id}/findings/{finding_id} -- remove finding (no renumbering)

All routes require the "reports" permission.
"""

from __future__ import annotations

import re
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter
from api.models import ReportCreate, ReportFindingCreate, ReportFindingPatch, ReportPatch
from api.routes.v1.common import get_stores, require_nested, require_record
from auth.dependencies import require_admin, require_permission
from core.config import utc_now
from core.export import render_report_pdf
from core.formatter import report_to_markdown
from core.models import Report, ReportFinding
from stores.views import ReportDraft, ReportSource, draft_report_from_execution, report_sources

router = APIRouter(dependencies=[Depends(require_permission("reports"))])


def _download_name(report: Report, suffix: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "-", report.title).strip("-").lower() or "report"
    return f"{slug}-{report.id}.{suffix}"


# ---------------------------------------------------------------------------
# Collection and drafting
# ---------------------------------------------------------------------------


@limiter.limit("60/minute")
@router.get("/reports", response_model=list[Report])
def list_reports(request: Request) -> list[Report]:
    return list(get_stores(request).reports.list())


@limiter.limit("30/minute")
@router.post("/reports", response_model=Report, status_code=201)
def create_report(request: Request, body: ReportCreate) -> Report:
    return get_stores(request).reports.add(body.model_dump())


@limiter.limit("60/minute")
@router.get("/reports/sources", response_model=list[ReportSource])
def list_report_sources(request: Request, year: Optional[int] = None) -> list[ReportSource]:
    """Executions offered as report sources, labelled with year (default: current)."""
    return report_sources(get_stores(request).executions.list(), year or utc_now().year)


@limiter.limit("60/minute")
@router.get("/reports/draft/{execution_id}", response_model=ReportDraft)
def draft_report(request: Request, execution_id: int) -> ReportDraft:
    execution = require_record(get_stores(request).executions, execution_id, "Execution")
    return draft_report_from_execution(execution)


@router.post("/reports/clear", status_code=204, dependencies=[Depends(require_admin)])
def clear_reports(request: Request) -> Response:
    get_stores(request).reports.clear_all()
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Single report
# ---------------------------------------------------------------------------


@limiter.limit("60/minute")
@router.get("/reports/{report_id}", response_model=Report)
def get_report(request: Request, report_id: int) -> Report:
    return require_record(get_stores(request).reports, report_id, "Report")


@limiter.limit("30/minute")
@router.patch("/reports/{report_id}", response_model=Report)
def update_report(request: Request, report_id: int, body: ReportPatch) -> Report:
    store = get_stores(request).reports
    require_record(store, report_id, "Report")
    store.update(report_id, body.changes())
    return store.get(report_id)


@limiter.limit("30/minute")
@router.delete("/reports/{report_id}", status_code=204)
def delete_report(request: Request, report_id: int) -> Response:
    store = get_stores(request).reports
    require_record(store, report_id, "Report")
    store.remove(report_id)
    return Response(status_code=204)


@limiter.limit("10/minute")
@router.get("/reports/{report_id}/export.pdf", response_class=Response)
def export_report_pdf(request: Request, report_id: int) -> Response:
    report = require_record(get_stores(request).reports, report_id, "Report")
    return Response(
        content=render_report_pdf(report),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{_download_name(report, "pdf")}"'},
    )


@limiter.limit("30/minute")
@router.get("/reports/{report_id}/export.md", response_class=Response)
def export_report_markdown(request: Request, report_id: int) -> Response:
    report = require_record(get_stores(request).reports, report_id, "Report")
    return Response(
        content=report_to_markdown(report),
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{_download_name(report, "md")}"'},
    )


# ---------------------------------------------------------------------------
# Report findings
# ---------------------------------------------------------------------------


@limiter.limit("30/minute")
@router.post("/reports/{report_id}/findings", response_model=ReportFinding, status_code=201)
def add_report_finding(request: Request, report_id: int, body: ReportFindingCreate) -> ReportFinding:
    store = get_stores(request).reports
    require_record(store, report_id, "Report")
    return store.add_finding(report_id, body.model_dump())


@limiter.limit("30/minute")
@router.patch("/reports/{report_id}/findings/{finding_id}", response_model=ReportFinding)
def update_report_finding(
    request: Request, report_id: int, finding_id: int, body: ReportFindingPatch
) -> ReportFinding:
    store = get_stores(request).reports
    require_nested(require_record(store, report_id, "Report"), "findings", finding_id, "Report finding")
    store.update_finding(report_id, finding_id, body.changes())
    return require_nested(store.get(report_id), "findings", finding_id, "Report finding")


@limiter.limit("30/minute")
@router.delete("/reports/{report_id}/findings/{finding_id}", status_code=204)
def delete_report_finding(request: Request, report_id: int, finding_id: int) -> Response:
    store = get_stores(request).reports
    require_nested(require_record(store, report_id, "Report"), "findings", finding_id, "Report finding")
    store.remove_finding(report_id, finding_id)
    return Response(status_code=204)
