"""
core/formatter.py -- Renders Audit Desk records for the terminal, JSON, CSV and Markdown.

Every render_* function returns a string; main.py decides where it goes.
Records are the frozen dataclasses from core/models.py. Nested tuples
(checklist items, findings) are shown as counts in tables and CSV, and in
full in JSON and detail views.
"""

import csv
import io
import json
import os
import re
import sys
from dataclasses import asdict, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from .models import Audit, AuditType, ChecklistExecution, CorrectiveAction, Report

W = 78  # output width

# ---------------------------------------------------------------------------
# ANSI color control
# ---------------------------------------------------------------------------

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from a string."""
    return _ANSI_RE.sub("", text)


def _use_color() -> bool:
    """Return True if stdout is a TTY and color has not been disabled.

    Respects NO_COLOR env var (https://no-color.org) and checks sys.stdout.isatty().
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


_color_enabled: Optional[bool] = None  # None = auto-detect


def disable_color() -> None:
    """Force-disable color output (called when --no-color flag is set)."""
    global _color_enabled
    _color_enabled = False


def enable_color() -> None:
    global _color_enabled
    _color_enabled = True


def _color_active() -> bool:
    if _color_enabled is not None:
        return _color_enabled
    return _use_color()


# ---------------------------------------------------------------------------
# ANSI code helpers -- return empty string when color is off
# ---------------------------------------------------------------------------

STATUS_COLORS = {
    # red: needs attention
    "high": "\033[91m",
    "critical": "\033[91m",
    "pending": "\033[91m",
    # yellow: moving
    "medium": "\033[93m",
    "major": "\033[93m",
    "in_progress": "\033[93m",
    "in_review": "\033[93m",
    # green: done
    "low": "\033[92m",
    "minor": "\033[92m",
    "completed": "\033[92m",
    "regularized": "\033[92m",
    "verified": "\033[92m",
    "approved": "\033[92m",
    "final": "\033[92m",
}


def _reset() -> str:
    return "\033[0m" if _color_active() else ""


def _bold() -> str:
    return "\033[1m" if _color_active() else ""


def _dim() -> str:
    return "\033[2m" if _color_active() else ""


def _status_color(value: str) -> str:
    return STATUS_COLORS.get(value, "") if _color_active() else ""


# ---------------------------------------------------------------------------
# Layout helpers
# ---------------------------------------------------------------------------


def _bar(char: str = "═") -> str:
    return char * W


def _section(title: str) -> str:
    return f"\n  {_bold()}{title}{_reset()}\n  {'─' * (W - 2)}"


def _wrap(text: str, indent: int = 4, width: int = W) -> str:
    """Simple word-wrap at `width` chars with leading indent. Keeps paragraph breaks."""
    out = []
    for paragraph in text.splitlines() or [""]:
        words = paragraph.split()
        line = " " * indent
        lines = []
        for word in words:
            if len(line) + len(word) + 1 > width:
                lines.append(line)
                line = " " * indent + word
            else:
                line += ("" if line.strip() == "" else " ") + word
        if line.strip():
            lines.append(line)
        out.append("\n".join(lines))
    return "\n".join(out)


def _cell(value: Any) -> str:
    """Plain-text rendering of one field value."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, tuple):
        return str(len(value))
    if is_dataclass(value):
        composite = getattr(value, "composite_id", None)
        return composite if composite is not None else str(value)
    return str(value)


# ---------------------------------------------------------------------------
# Terminal table
# ---------------------------------------------------------------------------

_TABLE_COLUMNS: dict[type, tuple[str, ...]] = {
    AuditType: ("id", "name", "color", "active"),
    Audit: ("id", "name", "audit_type", "plan_year", "status", "start_date", "end_date"),
    ChecklistExecution: ("id", "name", "category", "items", "findings", "created_at"),
    CorrectiveAction: ("id", "title", "priority", "status", "progress", "due_date"),
    Report: ("id", "title", "status", "audit_name", "findings", "created_at"),
}

_COLORED_COLUMNS = {"status", "priority", "severity"}


def render_table(records: list) -> str:
    """Aligned text table of records, columns chosen by record type."""
    if not records:
        return "  (no records)\n"
    columns = _TABLE_COLUMNS.get(type(records[0])) or tuple(f.name for f in fields(records[0]))
    rows = [[_cell(getattr(r, c)) for c in columns] for r in records]
    widths = [min(max(len(c), *(len(row[i]) for row in rows)), 40) for i, c in enumerate(columns)]

    bold = _bold()
    reset = _reset()
    lines = ["  " + bold + "  ".join(c.upper().ljust(w) for c, w in zip(columns, widths)) + reset]
    lines.append("  " + "  ".join("─" * w for w in widths))
    for row in rows:
        cells = []
        for column, value, width in zip(columns, row, widths):
            text = value[:width].ljust(width)
            if column in _COLORED_COLUMNS:
                text = f"{_status_color(value)}{text}{reset}"
            cells.append(text)
        lines.append("  " + "  ".join(cells))
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Detail view
# ---------------------------------------------------------------------------


def render_record(record: Any) -> str:
    """Every field of one record; nested items listed one per line."""
    bold = _bold()
    reset = _reset()
    title = getattr(record, "name", None) or getattr(record, "title", "")
    out = [f"\n{bold}{_bar()}{reset}", f"  {bold}#{record.id}  {title}{reset}", f"{bold}{_bar()}{reset}"]

    for f in fields(record):
        value = getattr(record, f.name)
        if f.name in ("id", "name", "title"):
            continue
        if isinstance(value, tuple):
            out.append(_section(f"{f.name.upper()} ({len(value)})"))
            for item in value:
                label = f"#{getattr(item, 'number', item.id)}"
                extra = [
                    _cell(getattr(item, attr))
                    for attr in ("severity", "compliant")
                    if hasattr(item, attr)
                ]
                suffix = f" [{', '.join(extra)}]" if extra else ""
                out.append(f"    {label:<4} {item.description}{suffix}")
            continue
        text = _cell(value)
        if len(text) > W - 24:
            out.append(f"  {f.name:<20}")
            out.append(_wrap(text))
        else:
            out.append(f"  {f.name:<20}{text}")
    out.append(f"\n{_bar()}\n")
    return "\n".join(out)


# ---------------------------------------------------------------------------
# Dashboard and store status
# ---------------------------------------------------------------------------


def render_dashboard(metrics: Any) -> str:
    """Render a DashboardMetrics (stores/views.py)."""
    bold = _bold()
    reset = _reset()
    out = [f"\n{bold}{_bar()}{reset}", f"  {bold}AUDIT DASHBOARD{reset}", f"{bold}{_bar()}{reset}"]

    out.append(_section(f"AUDITS ({metrics.audits_total})"))
    for status, count in metrics.audits_by_status.items():
        out.append(f"    {_status_color(status)}{status:<16}{reset}{count:>4}")

    out.append(_section(f"FINDINGS ({metrics.findings_total})"))
    for severity, count in metrics.findings_by_severity.items():
        out.append(f"    {_status_color(severity)}{severity:<16}{reset}{count:>4}")

    out.append(_section(f"CORRECTIVE ACTIONS ({metrics.actions_total})"))
    out.append(f"    {'regularized':<16}{metrics.actions_regularized:>4}")

    out.append(_section("RECENT AUDITS"))
    if not metrics.recent_audits:
        out.append(f"    {_dim()}none{reset}")
    for recent in metrics.recent_audits:
        audit = recent.audit
        status = audit.status.value
        out.append(
            f"    {audit.start_date.date().isoformat()}  {audit.name[:40]:<40} "
            f"{_status_color(status)}{status:<12}{reset} {recent.finding_count} finding(s)"
        )
    out.append(f"\n{_bar()}\n")
    return "\n".join(out)


def render_sample(sample: Any) -> str:
    """Render a core.sampling.Sample: the size line, then the wrapped element numbers."""
    bold = _bold()
    reset = _reset()
    out = [
        f"\n  {bold}SAMPLE{reset}  population {sample.population}, {sample.percentage:g}% -> {sample.size} element(s)",
        "  " + "─" * (W - 2),
        _wrap(", ".join(str(n) for n in sample.elements)),
    ]
    return "\n".join(out) + "\n"


def render_status(descriptions: list[dict]) -> str:
    """Render EntityStore.describe() snapshots, one line per store."""
    lines = [f"  {_bold()}{'STORE':<24}{'STATE':<16}{'RECORDS':>8}  {'SEEDED':<8}DELETED IDS{_reset()}"]
    lines.append("  " + "─" * (W - 2))
    for info in descriptions:
        deleted = info.get("deleted_ids")
        deleted_text = "-" if deleted is None else (", ".join(str(i) for i in deleted) or "none")
        lines.append(
            f"  {info['store']:<24}{info['state']:<16}{info['records']:>8}  "
            f"{_cell(info['initialized']):<8}{deleted_text}"
        )
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# JSON export
# ---------------------------------------------------------------------------


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(data: Any) -> str:
    """Serialize a record, a list of records, or plain data to indented JSON."""
    if is_dataclass(data):
        data = asdict(data)
    elif isinstance(data, (list, tuple)):
        data = [asdict(item) if is_dataclass(item) else item for item in data]
    return json.dumps(data, indent=2, ensure_ascii=False, default=_json_default)


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------

# Spreadsheet apps treat cells starting with these as formulas (CWE-1236).
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def _sanitize_csv_cell(value: str) -> str:
    """Prefix formula-like text with a tab so spreadsheets read it as text."""
    if value and value.startswith(_FORMULA_PREFIXES) and not _is_number(value):
        return "\t" + value
    return value


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True


def to_csv(records: list) -> str:
    """Render records as CSV: one column per top-level field.

    Nested collections become counts. Dates are full ISO-8601 timestamps.
    """
    buf = io.StringIO()
    writer = csv.writer(buf)
    if not records:
        return ""
    columns = [f.name for f in fields(records[0])]
    writer.writerow(columns)
    for record in records:
        row = []
        for column in columns:
            value = getattr(record, column)
            text = value.isoformat() if isinstance(value, datetime) else _cell(value)
            row.append(_sanitize_csv_cell(text))
        writer.writerow(row)
    return buf.getvalue()


def rows_to_csv(rows: list[dict]) -> str:
    """CSV of heterogeneous dict rows (ingestion tables); union of keys as header."""
    columns: list[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(columns)
    for row in rows:
        writer.writerow([_sanitize_csv_cell(_cell(row.get(c))) for c in columns])
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Markdown export
# ---------------------------------------------------------------------------


def _md_escape(text: str) -> str:
    # Escape pipe characters so free text cannot break table layout.
    return text.replace("|", "\\|").replace("\n", " ")


def report_to_markdown(report: Report) -> str:
    """Render a Report as a Markdown document, sections in export order."""
    lines = [f"# {report.title}", ""]
    lines.append(f"- **Audit:** {report.audit_name or '-'}")
    lines.append(f"- **Status:** {report.status.value}")
    lines.append(f"- **Created:** {report.created_at.date().isoformat()}")
    if report.reviewed_at is not None:
        lines.append(f"- **Reviewed:** {report.reviewed_at.date().isoformat()}")
    lines.append("")

    for heading, body in (
        ("Summary", report.summary),
        ("Scope", report.scope),
        ("Methodology", report.methodology),
        ("Conclusions", report.conclusions),
        ("Observations", report.observations),
        ("Recommendations", report.recommendations),
    ):
        lines += [f"## {heading}", "", body.strip() or "_None._", ""]

    lines += ["## Findings", ""]
    if not report.findings:
        lines += ["_No findings._", ""]
    else:
        lines.append("| # | Severity | Description | Recommendation | Due |")
        lines.append("|---|----------|-------------|----------------|-----|")
        for f in report.findings:
            due = f.due_date.date().isoformat() if f.due_date else "-"
            lines.append(
                f"| {f.number} | {f.severity.value} | {_md_escape(f.description)} "
                f"| {_md_escape(f.recommendation)} | {due} |"
            )
        lines.append("")
    return "\n".join(lines)
