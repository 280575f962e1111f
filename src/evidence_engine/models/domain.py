"""Core domain objects used throughout the system."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from evidence_engine.models.source_types import SourceCategory, category_for


@dataclass(frozen=True)
class EvidenceUnit:
    id: str
    source_id: str
    source_category: SourceCategory
    source_type: str
    page_number: int
    paragraph_index: int
    sequence_index: int
    text: str
    similarity: float
    derived_score: float = 0.0
    is_expanded_context: bool = False

    @property
    def is_primary_authority(self) -> bool:
        return self.source_category is SourceCategory.PRIMARY_AUTHORITY

    @property
    def length(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class SourceRecord:
    id: str
    source_type: str
    title: str

    @property
    def category(self) -> SourceCategory:
        return category_for(self.source_type)


@dataclass(frozen=True)
class SelectionBudget:
    max_total_chars: int
    max_units_per_source: int
    hard_max_units_per_source: int
    target_source_count: int
    estimated_unit_count: int

    def __post_init__(self) -> None:
        if self.hard_max_units_per_source < self.max_units_per_source:
            raise ValueError(
                "hard_max_units_per_source must be >= max_units_per_source"
            )


@dataclass
class SelectionResult:
    units: list[EvidenceUnit]
    used_chars: int
    source_counts: dict[str, int]
    budget: SelectionBudget
    strategy: str


@dataclass(frozen=True)
class ArgumentProfile:
    focus_terms: frozenset[str]
    section_topics: tuple[str, ...]
    approach_terms: frozenset[str]

    @property
    def is_empty(self) -> bool:
        return not (self.focus_terms or self.section_topics or self.approach_terms)


@dataclass
class SourceCitationStats:
    source_id: str
    source_type: str
    total_units: int
    citations: int = 0
    direct: int = 0
    substantial: int = 0
    reference: int = 0

    @property
    def citation_rate(self) -> float:
        return self.citations / self.total_units if self.total_units else 0.0


@dataclass
class CoverageReport:
    required_source_count: int
    used_source_count: int
    missing_source_ids: list[str]
    quality_score: float
    total_citations: int = 0
    citation_density: float = 0.0
    primary_authority_coverage: str = "0/0"
    source_stats: list[SourceCitationStats] = field(default_factory=list)
    breakdown: dict[str, float] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.missing_source_ids


@dataclass
class CallerLock:
    in_flight: bool = False
    started_at: float | None = None


@dataclass
class QueueEntry:
    ticket_id: str
    caller_id: str
    job: Callable[[], Awaitable[Any]]
    future: asyncio.Future
    enqueued_at: float


@dataclass(frozen=True)
class QueueTicket:
    ticket_id: str
    position: int
    estimated_wait_seconds: int
    total_queue_length: int


@dataclass
class TicketOutcome:
    ticket_id: str
    caller_id: str
    status: str  # "pending" | "complete" | "failed"
    result: Any = None
    error: Exception | None = None


@dataclass
class GenerationRun:
    """Everything produced by one pass from selection through validation."""

    document: dict
    evidence_index: dict[str, dict]
    coverage: CoverageReport
    selection: SelectionResult
    warnings: list[str] = field(default_factory=list)
