"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class SectionPlan(BaseModel):
    section_index: int
    title: str
    description: str = ""


class SectionStructure(BaseModel):
    sections: list[SectionPlan] = Field(default_factory=list)


class ArgumentationLine(BaseModel):
    id: str = ""
    title: str
    description: str = ""
    approach: str = ""
    focus_areas: list[str] = Field(default_factory=list)
    tone: str = ""
    structure: SectionStructure = Field(default_factory=SectionStructure)


class Approach(BaseModel):
    argumentation_line: ArgumentationLine | None = None
    combined_lines: list[ArgumentationLine] = Field(default_factory=list)
    tone: str | None = None
    structure_type: str | None = None
    focus_areas: list[str] = Field(default_factory=list)
    sections: list[SectionPlan] = Field(default_factory=list)


class RetrieveRequest(BaseModel):
    query: str
    scope_id: str


class EvidenceUnitOut(BaseModel):
    id: str
    source_id: str
    source_type: str
    source_category: str
    page_number: int
    paragraph_index: int
    sequence_index: int
    text: str
    similarity: float
    derived_score: float
    is_expanded_context: bool = False


class RetrieveResponse(BaseModel):
    units: list[EvidenceUnitOut]


class GenerateRequest(BaseModel):
    query: str
    scope_id: str
    approach: Approach | None = None
    word_limit: int | None = Field(default=None, gt=0)
    document_type: str | None = None


class SynthesizeRequest(BaseModel):
    query: str
    scope_id: str
    document_type: str | None = None


class PersonalizationOption(BaseModel):
    value: str
    label: str
    description: str = ""


class PersonalizationOptions(BaseModel):
    tone_options: list[PersonalizationOption] = Field(default_factory=list)
    structure_options: list[PersonalizationOption] = Field(default_factory=list)
    focus_options: list[PersonalizationOption] = Field(default_factory=list)


class RecommendedStructure(BaseModel):
    type: str = ""
    description: str = ""
    sections: list[SectionPlan] = Field(default_factory=list)


class SynthesisResponse(BaseModel):
    argumentation_lines: list[ArgumentationLine]
    recommended_structure: RecommendedStructure = Field(default_factory=RecommendedStructure)
    personalization_options: PersonalizationOptions = Field(
        default_factory=PersonalizationOptions
    )


class EvidenceMeta(BaseModel):
    source_id: str
    page_number: int
    paragraph_index: int
    excerpt: str
    is_expanded_context: bool = False


class SourceStatsOut(BaseModel):
    source_id: str
    source_type: str
    total_units: int
    citations: int
    direct: int
    substantial: int
    reference: int
    citation_rate: float


class CoverageReportOut(BaseModel):
    required_source_count: int
    used_source_count: int
    missing_source_ids: list[str]
    quality_score: float
    total_citations: int
    citation_density: float
    primary_authority_coverage: str
    source_stats: list[SourceStatsOut] = Field(default_factory=list)
    breakdown: dict[str, float] = Field(default_factory=dict)


class GenerateResponse(BaseModel):
    document: dict
    evidence_index: dict[str, EvidenceMeta]
    coverage_report: CoverageReportOut
    warnings: list[str] = Field(default_factory=list)


class QueuedResponse(BaseModel):
    queued: Literal[True] = True
    ticket_id: str
    position: int
    estimated_wait_seconds: int
    total_queue_length: int


class QueueStatusResponse(BaseModel):
    in_queue: bool
    queue_position: int | None
    estimated_wait_seconds: int | None
    queue_mode_active: bool
    total_queue_length: int


class TicketResponse(BaseModel):
    ticket_id: str
    status: Literal["pending", "complete", "failed"]
    result: GenerateResponse | None = None
    error: ErrorResponse | None = None


class ErrorResponse(BaseModel):
    kind: str
    message: str


class HealthResponse(BaseModel):
    status: str
    scope_count: int
    unit_count: int
    queue_mode_active: bool
    queue_length: int


TicketResponse.model_rebuild()
