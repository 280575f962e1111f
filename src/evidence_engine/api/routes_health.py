"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from evidence_engine.admission.controller import AdmissionController
from evidence_engine.api.dependencies import get_admission, get_corpus
from evidence_engine.catalog.memory_corpus import MemoryCorpus
from evidence_engine.models.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    corpus: MemoryCorpus = Depends(get_corpus),
    admission: AdmissionController = Depends(get_admission),
) -> HealthResponse:
    return HealthResponse(
        status="degraded" if admission.queue_mode_active else "ok",
        scope_count=corpus.scope_count,
        unit_count=corpus.unit_count,
        queue_mode_active=admission.queue_mode_active,
        queue_length=admission.queue_length,
    )
