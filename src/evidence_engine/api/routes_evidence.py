"""Retrieval, synthesis, generation and queue endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from evidence_engine.admission.controller import AdmissionController
from evidence_engine.api.auth import get_caller_id
from evidence_engine.api.dependencies import get_admission, get_pipeline
from evidence_engine.api.errors import error_body
from evidence_engine.exceptions import EvidenceEngineError
from evidence_engine.models.domain import CoverageReport, GenerationRun, QueueTicket
from evidence_engine.models.schemas import (
    CoverageReportOut,
    ErrorResponse,
    EvidenceMeta,
    EvidenceUnitOut,
    GenerateRequest,
    GenerateResponse,
    QueuedResponse,
    QueueStatusResponse,
    RetrieveRequest,
    RetrieveResponse,
    SourceStatsOut,
    SynthesisResponse,
    SynthesizeRequest,
    TicketResponse,
)
from evidence_engine.pipeline.evidence_pipeline import EvidencePipeline

router = APIRouter()


def coverage_out(report: CoverageReport) -> CoverageReportOut:
    return CoverageReportOut(
        required_source_count=report.required_source_count,
        used_source_count=report.used_source_count,
        missing_source_ids=report.missing_source_ids,
        quality_score=report.quality_score,
        total_citations=report.total_citations,
        citation_density=report.citation_density,
        primary_authority_coverage=report.primary_authority_coverage,
        source_stats=[
            SourceStatsOut(**asdict(s), citation_rate=round(s.citation_rate, 4))
            for s in report.source_stats
        ],
        breakdown=report.breakdown,
    )


def generate_response(run: GenerationRun) -> GenerateResponse:
    return GenerateResponse(
        document=run.document,
        evidence_index={k: EvidenceMeta(**v) for k, v in run.evidence_index.items()},
        coverage_report=coverage_out(run.coverage),
        warnings=run.warnings,
    )


@router.post("/retrieve", response_model=RetrieveResponse)
async def retrieve(
    request: RetrieveRequest,
    pipeline: EvidencePipeline = Depends(get_pipeline),
    _caller_id: str = Depends(get_caller_id),
) -> RetrieveResponse:
    units = await pipeline.retrieve(request.query, request.scope_id)
    return RetrieveResponse(
        units=[
            EvidenceUnitOut(
                id=u.id,
                source_id=u.source_id,
                source_type=u.source_type,
                source_category=u.source_category.value,
                page_number=u.page_number,
                paragraph_index=u.paragraph_index,
                sequence_index=u.sequence_index,
                text=u.text,
                similarity=u.similarity,
                derived_score=round(u.derived_score, 6),
                is_expanded_context=u.is_expanded_context,
            )
            for u in units
        ]
    )


@router.post("/synthesize", response_model=SynthesisResponse)
async def synthesize(
    request: SynthesizeRequest,
    pipeline: EvidencePipeline = Depends(get_pipeline),
    _caller_id: str = Depends(get_caller_id),
) -> SynthesisResponse:
    return await pipeline.synthesize(request.query, request.scope_id, request.document_type)


@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses={202: {"model": QueuedResponse}},
)
async def generate(
    request: GenerateRequest,
    pipeline: EvidencePipeline = Depends(get_pipeline),
    caller_id: str = Depends(get_caller_id),
):
    outcome = await pipeline.generate(
        request.query,
        request.scope_id,
        caller_id,
        approach=request.approach,
        word_limit=request.word_limit,
        document_type=request.document_type,
    )
    if isinstance(outcome, QueueTicket):
        queued = QueuedResponse(
            ticket_id=outcome.ticket_id,
            position=outcome.position,
            estimated_wait_seconds=outcome.estimated_wait_seconds,
            total_queue_length=outcome.total_queue_length,
        )
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=queued.model_dump())
    return generate_response(outcome)


@router.get("/generate/queue/status", response_model=QueueStatusResponse)
async def queue_status(
    admission: AdmissionController = Depends(get_admission),
    caller_id: str = Depends(get_caller_id),
) -> QueueStatusResponse:
    return QueueStatusResponse(**await admission.status(caller_id))


@router.get("/generate/queue/{ticket_id}", response_model=TicketResponse)
async def ticket_result(
    ticket_id: str,
    admission: AdmissionController = Depends(get_admission),
    caller_id: str = Depends(get_caller_id),
) -> TicketResponse:
    outcome = admission.ticket_outcome(ticket_id)
    # Another caller's ticket is reported the same as an unknown one.
    if outcome is None or outcome.caller_id != caller_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown ticket")

    if outcome.status == "complete":
        return TicketResponse(
            ticket_id=ticket_id, status="complete", result=generate_response(outcome.result)
        )
    if outcome.status == "failed":
        error = outcome.error
        body = (
            error_body(error)
            if isinstance(error, EvidenceEngineError)
            else {"kind": "internal_error", "message": str(error)}
        )
        return TicketResponse(ticket_id=ticket_id, status="failed", error=ErrorResponse(**body))
    return TicketResponse(ticket_id=ticket_id, status="pending")
