"""
ingest/batch.py -- Validate and parse a batch of uploaded files.

Pipeline per file:
  check_upload() (extension, MIME type, size) -> PARSERS[ext](content)
  -> ParsedFile(rows=...) or ParsedFile(error=...)

A failing file never stops the batch: its error is recorded and the next
file is processed. IngestBatch.table() consolidates the rows of every
successful file, each tagged with its source file name.

Usage:
    batch = ingest_files([("checklist.csv", "text/csv", data)])
    batch.table()
"""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path, PurePath

from core.config import get_settings
from ingest.parsers import ALLOWED_EXTENSIONS, ALLOWED_MIME_TYPES, PARSERS, ParseError

logger = logging.getLogger("auditdesk.ingest")

SOURCE_FILE_KEY = "source_file"


@dataclass
class ParsedFile:
    """Result for one uploaded file. Exactly one of rows/error is meaningful."""

    filename: str
    size: int
    rows: list[dict] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class IngestBatch:
    files: list[ParsedFile] = field(default_factory=list)

    @property
    def errors(self) -> list[ParsedFile]:
        return [f for f in self.files if not f.ok]

    def table(self) -> list[dict]:
        """All rows from all parsed files, each with a source_file column first."""
        return [{SOURCE_FILE_KEY: f.filename, **row} for f in self.files if f.ok for row in f.rows]


def check_upload(filename: str, size: int, content_type: str | None, max_bytes: int) -> str | None:
    """Return an error message when the file may not be ingested, else None.

    content_type None (local files) skips the MIME check.
    """
    extension = PurePath(filename).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        return f"unsupported file type {extension or '(none)'}"
    if content_type and content_type.split(";")[0].strip() not in ALLOWED_MIME_TYPES:
        return f"unsupported content type {content_type}"
    if size > max_bytes:
        return f"file exceeds the {max_bytes // (1024 * 1024)} MB limit"
    return None


def parse_file(filename: str, content: bytes, content_type: str | None = None, max_bytes: int | None = None) -> ParsedFile:
    limit = get_settings().max_upload_bytes if max_bytes is None else max_bytes
    error = check_upload(filename, len(content), content_type, limit)
    if error is not None:
        logger.warning("Skipping %s: %s", filename, error)
        return ParsedFile(filename=filename, size=len(content), error=error)
    parser = PARSERS[PurePath(filename).suffix.lower()]
    try:
        rows = parser(content)
    except ParseError as exc:
        logger.warning("Could not parse %s: %s", filename, exc)
        return ParsedFile(filename=filename, size=len(content), error=str(exc))
    logger.info("Parsed %s (%d rows)", filename, len(rows))
    return ParsedFile(filename=filename, size=len(content), rows=rows)


def ingest_files(uploads: Iterable[tuple[str, str | None, bytes]], max_bytes: int | None = None) -> IngestBatch:
    """Parse (filename, content_type, content) triples in order."""
    return IngestBatch(files=[parse_file(name, content, ctype, max_bytes) for name, ctype, content in uploads])


def ingest_paths(paths: Iterable[Path], max_bytes: int | None = None) -> IngestBatch:
    """CLI entry point: read local files and parse them as one batch.

    The MIME type is guessed from the file name; unreadable paths become
    per-file errors.
    """
    files = []
    for path in paths:
        try:
            content = path.read_bytes()
        except OSError as exc:
            logger.warning("Cannot read %s: %s", path, exc)
            files.append(ParsedFile(filename=path.name, size=0, error=f"cannot read file: {exc.strerror}"))
            continue
        content_type, _ = mimetypes.guess_type(path.name)
        if content_type not in ALLOWED_MIME_TYPES:
            content_type = None
        files.append(parse_file(path.name, content, content_type, max_bytes))
    return IngestBatch(files=files)
