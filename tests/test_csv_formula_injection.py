"""
tests/test_csv_formula_injection.py -- Regression tests for CSV formula injection (CWE-1236).

Spreadsheet applications interpret cells that start with =, +, -, or @ as
formulas. Corrective action titles, notes and ingested rows are free text
typed by users or lifted from uploaded files, so a value like =CMD|'/C calc'
must never reach a CSV cell unchanged.

Mitigation: tab-prefix sanitization. Cells starting with a dangerous character
are prefixed with \t so the spreadsheet reads them as text. Plain numbers
(including negative ones) are left alone.
"""

import csv
import io
from datetime import datetime, timezone

from core.formatter import _sanitize_csv_cell, rows_to_csv, to_csv
from core.models import CorrectiveAction

# ---------------------------------------------------------------------------
# Test data helper
# ---------------------------------------------------------------------------


def _action_title_cell(title: str) -> str:
    """Call to_csv() on one corrective action and return its title cell."""
    action = CorrectiveAction(
        id=1,
        title=title,
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        due_date=datetime(2025, 2, 1, tzinfo=timezone.utc),
    )
    rows = list(csv.reader(io.StringIO(to_csv([action]))))
    assert len(rows) == 2, f"Expected header + 1 data row, got {len(rows)} rows"
    return rows[1][rows[0].index("title")]


# ---------------------------------------------------------------------------
# Dangerous prefixes
# ---------------------------------------------------------------------------


def test_formula_prefix_equals_sanitized():
    """Cell starting with '=' must not start with '=' after to_csv()."""
    cell = _action_title_cell("=CMD|'/C calc'")
    assert not cell.startswith("="), f"CSV injection: title cell starts with '=' -- got: {cell!r}"


def test_formula_prefix_plus_sanitized():
    """Cell starting with '+' must not start with '+' after to_csv()."""
    cell = _action_title_cell("+1+1")
    assert not cell.startswith("+"), f"CSV injection: title cell starts with '+' -- got: {cell!r}"


def test_formula_prefix_minus_sanitized():
    """Cell starting with '-' must not start with '-' after to_csv()."""
    cell = _action_title_cell("-1+1")
    assert not cell.startswith("-"), f"CSV injection: title cell starts with '-' -- got: {cell!r}"


def test_formula_prefix_at_sanitized():
    """Cell starting with '@' must not start with '@' after to_csv()."""
    cell = _action_title_cell("@SUM(A1)")
    assert not cell.startswith("@"), f"CSV injection: title cell starts with '@' -- got: {cell!r}"


def test_ingested_rows_sanitized():
    """rows_to_csv() applies the same rule to ingestion tables."""
    rows = list(csv.reader(io.StringIO(rows_to_csv([{"source_file": "a.csv", "note": "=HYPERLINK()"}]))))
    assert rows[1][1] == "\t=HYPERLINK()", f"Got {rows[1][1]!r}"


# ---------------------------------------------------------------------------
# Safe values -- no false-positive sanitization
# ---------------------------------------------------------------------------


def test_safe_text_unchanged():
    """Safe text that does not start with a formula prefix is not modified."""
    cell = _action_title_cell("Update to version 2.0")
    assert cell == "Update to version 2.0", f"Safe text was incorrectly modified. Got: {cell!r}"


def test_negative_number_unchanged():
    """Plain numbers keep their sign so numeric columns stay numeric."""
    assert _sanitize_csv_cell("-12.5") == "-12.5"


def test_empty_cell_unchanged():
    """Empty values produce an empty string cell, not a tab."""
    assert _sanitize_csv_cell("") == ""
