"""
api/routes/v1/sampling.py -- Random audit sampling.

  POST /sampling  -- {"population": N, "percentage": p} -> sample size and
                     the sorted element numbers drawn from 1..N

Nothing is stored; every call draws a fresh sample. Requires the "audits"
permission.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.limiter import limiter
from api.models import SamplingRequest
from auth.dependencies import require_permission
from core.sampling import Sample, draw_sample

router = APIRouter(dependencies=[Depends(require_permission("audits"))])


@limiter.limit("30/minute")
@router.post("/sampling", response_model=Sample)
def create_sample(request: Request, body: SamplingRequest) -> Sample:
    return draw_sample(body.population, body.percentage)
