"""
tests/test_formatter.py -- Tests for the terminal, JSON, CSV and Markdown renderers.

Color is disabled for the whole module so assertions can compare plain text.
"""

import csv
import io
import json

import pytest

from core import formatter
from core.formatter import (
    render_dashboard,
    render_record,
    render_sample,
    render_status,
    render_table,
    report_to_markdown,
    strip_ansi,
    to_csv,
    to_json,
)
from core.sampling import draw_sample
from stores import seed
from stores.views import dashboard_metrics


@pytest.fixture(autouse=True)
def _plain_output(monkeypatch):
    monkeypatch.setattr(formatter, "_color_enabled", False)


class TestTerminal:
    def test_table_columns_by_record_type(self):
        """Actions show title, priority, status, progress and due date."""
        out = render_table(seed.corrective_actions())
        header = out.splitlines()[0]
        for column in ("ID", "TITLE", "PRIORITY", "STATUS", "PROGRESS", "DUE_DATE"):
            assert column in header, f"Missing column {column} in {header!r}"
        assert "regularized" in out

    def test_empty_table(self):
        assert "no records" in render_table([])

    def test_record_lists_nested_items(self):
        out = render_record(seed.checklist_executions()[0])
        assert "FINDINGS (1)" in out
        assert "#1   No automatic backup policy [medium]" in out

    def test_no_ansi_when_disabled(self):
        out = render_table(seed.audits())
        assert strip_ansi(out) == out

    def test_dashboard(self):
        metrics = dashboard_metrics(seed.audits(), seed.checklist_executions(), seed.corrective_actions())
        out = render_dashboard(metrics)
        assert "AUDITS (2)" in out
        assert "CORRECTIVE ACTIONS (3)" in out
        assert "Information Security Audit" in out

    def test_status(self):
        out = render_status(
            [
                {"store": "audits", "state": "ready", "records": 2, "initialized": True},
                {"store": "checklist_executions", "state": "ready", "records": 1, "initialized": True, "deleted_ids": [2]},
            ]
        )
        lines = out.splitlines()
        assert lines[2].split()[-1] == "-", "Stores without a ledger show '-'"
        assert lines[3].split()[-1] == "2"

    def test_sample_lists_every_element(self):
        sample = draw_sample(38, 100)
        out = render_sample(sample)
        assert "population 38, 100% -> 38 element(s)" in out
        numbers = [int(n) for n in out.split("\n", 3)[3].replace(",", " ").split()]
        assert numbers == list(range(1, 39)), "wrapping must not lose or split element numbers"


class TestExports:
    def test_json_nested_and_dates(self):
        data = json.loads(to_json(seed.reports()[0]))
        assert data["status"] == "approved"
        assert data["created_at"].startswith("2024-01-20")
        assert [f["number"] for f in data["findings"]] == [1, 2]

    def test_json_list(self):
        data = json.loads(to_json(seed.audit_types()))
        assert len(data) == 6

    def test_csv_nested_collections_as_counts(self):
        rows = list(csv.DictReader(io.StringIO(to_csv(seed.checklist_executions()))))
        assert rows[0]["items"] == "2"
        assert rows[0]["findings"] == "1"
        assert rows[0]["created_at"].startswith("2024-01-01T00:00:00")

    def test_csv_empty(self):
        assert to_csv([]) == ""

    def test_markdown_section_order(self):
        md = report_to_markdown(seed.reports()[0])
        headings = [line for line in md.splitlines() if line.startswith("## ")]
        assert headings == [
            "## Summary",
            "## Scope",
            "## Methodology",
            "## Conclusions",
            "## Observations",
            "## Recommendations",
            "## Findings",
        ]
        assert "| 1 | critical | No strong password policy |" in md

    def test_markdown_escapes_pipes(self):
        from dataclasses import replace

        report = seed.reports()[1]
        finding = replace(report.findings[0], description="A | B")
        md = report_to_markdown(replace(report, findings=(finding,)))
        assert "A \\| B" in md
