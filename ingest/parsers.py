"""
ingest/parsers.py -- Per-format parsers for uploaded audit evidence.

Every parser takes the raw bytes of one file and returns a list of row
dicts. Row shape depends on the format:

  .csv   one row per data line, header names as keys (stdlib csv)
  .json  the object itself, or each element of a top-level array
  .txt   {"line": n, "content": ...} per non-blank line
  .pdf   one metadata row, then {"page": n, "content": ...} per page (pypdf)
  .docx  {"paragraph": n, "content": ...} per non-blank paragraph (python-docx)
  .xlsx  first worksheet, header row as keys (openpyxl)

.xls and .doc pass the upload allow-list but have no parser: they are
reported as unparseable instead of being guessed at.

Parsers raise ParseError on content they cannot read; library-specific
exceptions never reach the caller.
"""

from __future__ import annotations

import csv
import io
import json
import zipfile
from collections.abc import Callable

import openpyxl
from docx import Document
from openpyxl.utils.exceptions import InvalidFileException
from pypdf import PdfReader
from pypdf.errors import PyPdfError

ALLOWED_EXTENSIONS = frozenset({".xlsx", ".xls", ".csv", ".json", ".txt", ".pdf", ".docx", ".doc"})

ALLOWED_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/csv",
        "text/plain",
        "application/json",
    }
)

LEGACY_EXTENSIONS = frozenset({".xls", ".doc"})


class ParseError(Exception):
    """Raised when a file's content cannot be turned into rows."""


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError("file is not valid UTF-8 text") from exc


# ---------------------------------------------------------------------------
# Text formats
# ---------------------------------------------------------------------------


def parse_csv(content: bytes) -> list[dict]:
    """Parse CSV with a header row. Blank lines are skipped by csv itself."""
    reader = csv.DictReader(io.StringIO(_decode(content)))
    try:
        return [dict(row) for row in reader]
    except csv.Error as exc:
        raise ParseError(f"malformed CSV: {exc}") from exc


def parse_json(content: bytes) -> list[dict]:
    """Parse a JSON object or array. Non-object array elements become {"value": ...}."""
    try:
        data = json.loads(_decode(content))
    except ValueError as exc:
        raise ParseError(f"malformed JSON: {exc}") from exc
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [item if isinstance(item, dict) else {"value": item} for item in data]
    return [{"value": data}]


def parse_text(content: bytes) -> list[dict]:
    rows = []
    for number, line in enumerate(_decode(content).splitlines(), start=1):
        if line.strip():
            rows.append({"line": number, "content": line.strip()})
    return rows


# ---------------------------------------------------------------------------
# Office and PDF formats
# ---------------------------------------------------------------------------


def parse_pdf(content: bytes) -> list[dict]:
    """One metadata row, then one row per page that has extractable text."""
    try:
        reader = PdfReader(io.BytesIO(content), strict=False)
        meta = reader.metadata
        rows: list[dict] = [
            {
                "type": "metadata",
                "pages": len(reader.pages),
                "title": (meta.title if meta else None) or "",
                "author": (meta.author if meta else None) or "",
            }
        ]
        for number, page in enumerate(reader.pages, start=1):
            text = (page.extract_text() or "").strip()
            if text:
                rows.append({"type": "page", "page": number, "content": text})
    except (PyPdfError, ValueError, KeyError) as exc:
        raise ParseError(f"unreadable PDF: {exc}") from exc
    return rows


def parse_docx(content: bytes) -> list[dict]:
    try:
        document = Document(io.BytesIO(content))
    except (zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise ParseError(f"unreadable DOCX: {exc}") from exc
    rows = []
    for number, paragraph in enumerate(document.paragraphs, start=1):
        text = paragraph.text.strip()
        if text:
            rows.append({"paragraph": number, "content": text})
    return rows


def parse_xlsx(content: bytes) -> list[dict]:
    """First worksheet only; the first row supplies the keys."""
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise ParseError(f"unreadable XLSX: {exc}") from exc
    try:
        values = workbook.worksheets[0].iter_rows(values_only=True)
        header = next(values, None)
        if header is None:
            return []
        keys = [str(cell) if cell is not None else f"column_{i}" for i, cell in enumerate(header, start=1)]
        rows = []
        for raw in values:
            if all(cell is None for cell in raw):
                continue
            rows.append(dict(zip(keys, raw)))
        return rows
    finally:
        workbook.close()


def _legacy(content: bytes) -> list[dict]:
    raise ParseError("legacy binary format is not supported; save the file as .xlsx or .docx")


PARSERS: dict[str, Callable[[bytes], list[dict]]] = {
    ".csv": parse_csv,
    ".json": parse_json,
    ".txt": parse_text,
    ".pdf": parse_pdf,
    ".docx": parse_docx,
    ".xlsx": parse_xlsx,
    ".xls": _legacy,
    ".doc": _legacy,
}
