"""
tests/test_ingest.py -- Unit tests for ingest/parsers.py and ingest/batch.py.

Office and PDF fixtures are generated in memory with the same libraries the
parsers read them with (python-docx, openpyxl) or with the report PDF
renderer, so no binary files live in the repository.

Coverage: every supported format, the upload checks (extension, MIME type,
size), legacy formats, and batches where one file fails and the rest still
parse.
"""

import io
import json

import openpyxl
import pytest
from docx import Document

from core.export import render_report_pdf
from ingest.batch import SOURCE_FILE_KEY, check_upload, ingest_files, ingest_paths, parse_file
from ingest.parsers import ParseError, parse_csv, parse_docx, parse_json, parse_pdf, parse_text, parse_xlsx
from stores import seed

MB = 1024 * 1024


def _docx_bytes(*paragraphs: str) -> bytes:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


def _xlsx_bytes(rows: list[list]) -> bytes:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buf = io.BytesIO()
    workbook.save(buf)
    return buf.getvalue()


# ===========================================================================
# Parsers
# ===========================================================================


class TestTextParsers:
    """CSV, JSON and plain text."""

    def test_csv_header_becomes_keys(self):
        """Each data line becomes a dict keyed by the header row."""
        rows = parse_csv(b"item,compliant\nPassword policy,yes\nBackups,no\n")
        assert rows == [
            {"item": "Password policy", "compliant": "yes"},
            {"item": "Backups", "compliant": "no"},
        ]

    def test_csv_with_bom(self):
        """A UTF-8 BOM (Excel exports) does not leak into the first key."""
        rows = parse_csv("\ufeffitem\nA\n".encode("utf-8"))
        assert rows == [{"item": "A"}]

    def test_json_object_and_array(self):
        assert parse_json(b'{"a": 1}') == [{"a": 1}]
        assert parse_json(b'[{"a": 1}, 2]') == [{"a": 1}, {"value": 2}]

    def test_malformed_json_raises(self):
        with pytest.raises(ParseError, match="malformed JSON"):
            parse_json(b"{oops")

    def test_text_skips_blank_lines(self):
        """Line numbers refer to the original file, blanks included."""
        rows = parse_text(b"first\n\n  second  \n")
        assert rows == [{"line": 1, "content": "first"}, {"line": 3, "content": "second"}]

    def test_non_utf8_text_raises(self):
        with pytest.raises(ParseError):
            parse_text(b"\xff\xfe\xfa")


class TestOfficeParsers:
    """DOCX, XLSX and PDF."""

    def test_docx_paragraphs(self):
        rows = parse_docx(_docx_bytes("Scope", "", "All servers"))
        assert [r["content"] for r in rows] == ["Scope", "All servers"]

    def test_xlsx_first_row_is_header(self):
        rows = parse_xlsx(_xlsx_bytes([["item", "score"], ["Backups", 3], [None, None], ["Access", 5]]))
        assert rows == [{"item": "Backups", "score": 3}, {"item": "Access", "score": 5}]

    def test_empty_xlsx(self):
        workbook = openpyxl.Workbook()
        buf = io.BytesIO()
        workbook.save(buf)
        assert parse_xlsx(buf.getvalue()) == []

    def test_pdf_metadata_then_pages(self):
        """First row is metadata; page rows carry extracted text."""
        report = seed.reports()[0]
        rows = parse_pdf(render_report_pdf(report))
        assert rows[0]["type"] == "metadata"
        assert rows[0]["pages"] >= 1
        assert rows[0]["title"] == report.title
        pages = [r for r in rows if r["type"] == "page"]
        assert pages, "Expected at least one page with text"
        assert "Summary" in pages[0]["content"]

    def test_garbage_pdf_raises(self):
        with pytest.raises(ParseError):
            parse_pdf(b"this is not a pdf")


# ===========================================================================
# Upload checks and batches
# ===========================================================================


class TestCheckUpload:
    def test_accepts_allowed_file(self):
        assert check_upload("findings.csv", 100, "text/csv", MB) is None

    def test_rejects_extension(self):
        assert "unsupported file type" in check_upload("malware.exe", 10, None, MB)

    def test_rejects_mime(self):
        assert "unsupported content type" in check_upload("notes.txt", 10, "application/x-msdownload", MB)

    def test_mime_parameters_ignored(self):
        assert check_upload("notes.txt", 10, "text/plain; charset=utf-8", MB) is None

    def test_rejects_oversize(self):
        assert "exceeds" in check_upload("big.csv", MB + 1, "text/csv", MB)


class TestParseFile:
    def test_legacy_formats_reported_unparseable(self):
        """.xls and .doc pass the allow-list but never parse."""
        for name in ("old.xls", "old.doc"):
            parsed = parse_file(name, b"\xd0\xcf\x11\xe0", max_bytes=MB)
            assert not parsed.ok
            assert "legacy" in parsed.error

    def test_size_checked_on_actual_content(self):
        parsed = parse_file("big.txt", b"x" * 11, "text/plain", max_bytes=10)
        assert not parsed.ok
        assert parsed.size == 11


class TestBatch:
    def test_failing_file_does_not_stop_batch(self):
        """A bad file is reported; the others still contribute rows."""
        batch = ingest_files(
            [
                ("broken.json", "application/json", b"{nope"),
                ("checklist.csv", "text/csv", b"item\nBackups\nAccess\n"),
                ("evil.exe", "application/octet-stream", b"MZ"),
                ("notes.txt", "text/plain", b"one line\n"),
            ],
            max_bytes=MB,
        )
        assert [f.ok for f in batch.files] == [False, True, False, True]
        assert len(batch.errors) == 2
        table = batch.table()
        assert [r[SOURCE_FILE_KEY] for r in table] == ["checklist.csv", "checklist.csv", "notes.txt"]
        assert table[0] == {SOURCE_FILE_KEY: "checklist.csv", "item": "Backups"}

    def test_ingest_paths(self, tmp_path):
        """Local files are read, MIME-guessed and parsed; missing paths become errors."""
        (tmp_path / "data.json").write_text(json.dumps([{"a": 1}]), encoding="utf-8")
        (tmp_path / "plan.docx").write_bytes(_docx_bytes("Plan"))
        batch = ingest_paths([tmp_path / "data.json", tmp_path / "plan.docx", tmp_path / "gone.csv"], max_bytes=MB)
        assert [f.ok for f in batch.files] == [True, True, False]
        assert "cannot read" in batch.files[2].error
        assert len(batch.table()) == 2
