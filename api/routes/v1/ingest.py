"""
api/routes/v1/ingest.py -- Multi-file document upload.

Routes:
  POST /ingest  -- multipart "files" field, one or more documents

Each file is checked (extension, MIME type, size) and parsed on its own; a
file that fails is reported in the response and the rest of the batch is
still processed. The response carries one summary per file plus the
consolidated table of every parsed row tagged with its source file.

Nothing is written to the stores. Requires the "audits" permission.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile

from api.limiter import limiter
from api.models import ErrorDetail, IngestFileResult, IngestResponse
from auth.dependencies import require_permission
from core.config import get_settings
from ingest.batch import ingest_files

router = APIRouter(dependencies=[Depends(require_permission("audits"))])


@limiter.limit("5/minute")
@router.post("/ingest", response_model=IngestResponse)
async def ingest_upload(request: Request, files: list[UploadFile]) -> IngestResponse:
    """Parse uploaded CSV, JSON, TXT, PDF, DOCX and XLSX files.

    Reads at most max_upload_bytes + 1 bytes per file so an oversized upload
    is detected without buffering the whole body.
    """
    if not files:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="no_files", message="At least one file is required.").model_dump(),
        )

    max_bytes = get_settings().max_upload_bytes
    uploads = []
    for upload in files:
        raw = await upload.read(max_bytes + 1)
        uploads.append((upload.filename or "", upload.content_type, raw))

    # pypdf, openpyxl and python-docx are blocking parsers.
    batch = await asyncio.to_thread(ingest_files, uploads, max_bytes)
    return IngestResponse(
        files=[
            IngestFileResult(filename=f.filename, size=f.size, rows=len(f.rows), error=f.error)
            for f in batch.files
        ],
        errors=len(batch.errors),
        table=batch.table(),
    )
