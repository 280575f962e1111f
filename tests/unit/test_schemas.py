"""Tests for Pydantic schemas."""

import pytest
from pydantic import ValidationError

from evidence_engine.generation.output_models import GenerationOutput
from evidence_engine.models.schemas import (
    Approach,
    ErrorResponse,
    GenerateRequest,
    HealthResponse,
    QueuedResponse,
    TicketResponse,
)


def test_generate_request_defaults():
    req = GenerateRequest(query="Is consent valid?", scope_id="p1")
    assert req.approach is None
    assert req.word_limit is None


def test_generate_request_rejects_non_positive_word_limit():
    with pytest.raises(ValidationError):
        GenerateRequest(query="q", scope_id="p1", word_limit=0)


def test_approach_parses_nested_line():
    approach = Approach.model_validate(
        {
            "argumentation_line": {
                "title": "Doctrinal",
                "approach": "doctrinal analysis",
                "focus_areas": ["consent"],
                "structure": {"sections": [{"section_index": 1, "title": "Consent"}]},
            },
            "tone": "critical",
        }
    )
    assert approach.argumentation_line.structure.sections[0].title == "Consent"
    assert approach.combined_lines == []


def test_queued_response_serialization():
    data = QueuedResponse(
        ticket_id="t1", position=2, estimated_wait_seconds=60, total_queue_length=2
    ).model_dump()
    assert data["queued"] is True
    assert data["estimated_wait_seconds"] == 60


def test_ticket_response_with_error():
    resp = TicketResponse(
        ticket_id="t1",
        status="failed",
        error=ErrorResponse(kind="queue_timeout", message="waited too long"),
    )
    assert resp.result is None
    assert resp.error.kind == "queue_timeout"


def test_ticket_response_invalid_status():
    with pytest.raises(ValidationError):
        TicketResponse(ticket_id="t1", status="unknown")


def test_generation_output_keeps_unknown_fields():
    output = GenerationOutput.model_validate(
        {"sections": [{"title": "A", "paragraphs": [{"text": "x", "evidence_ids": ["e1"], "tone": "dry"}]}]}
    )
    paragraph = output.sections[0].paragraphs[0]
    assert paragraph.citations is None
    assert output.model_dump()["sections"][0]["paragraphs"][0]["tone"] == "dry"


def test_health_response():
    resp = HealthResponse(status="ok", scope_count=1, unit_count=10, queue_mode_active=False, queue_length=0)
    assert resp.status == "ok"
