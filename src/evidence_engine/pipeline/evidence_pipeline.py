"""Evidence pipeline orchestrator: retrieval through validated document."""

from __future__ import annotations

import functools
from collections.abc import Sequence

from evidence_engine.admission.controller import AdmissionController
from evidence_engine.config.settings import Settings
from evidence_engine.exceptions import InputError
from evidence_engine.generation.document_generator import DocumentGenerator
from evidence_engine.generation.output_parser import (
    parse_generation_output,
    parse_synthesis_output,
)
from evidence_engine.generation.output_validator import OutputValidator
from evidence_engine.generation.prompt_templates import (
    DocumentPlan,
    build_reasoning_prompt,
    build_synthesis_prompt,
    detect_word_limit,
    plan_document,
)
from evidence_engine.models.domain import EvidenceUnit, GenerationRun, QueueTicket, SourceRecord
from evidence_engine.models.schemas import Approach, SynthesisResponse
from evidence_engine.observability.logger import get_logger
from evidence_engine.observability.metrics import (
    log_coverage_metrics,
    log_scoring_metrics,
    log_selection_metrics,
)
from evidence_engine.observability.tracing import TraceContext
from evidence_engine.protocols.catalog import SourceCatalog
from evidence_engine.protocols.embedder import Embedder
from evidence_engine.protocols.llm import GenerationService
from evidence_engine.protocols.retriever import VectorSearch
from evidence_engine.scoring.argument_reranker import ArgumentReranker, build_argument_profile
from evidence_engine.scoring.coverage import CoverageScorer
from evidence_engine.scoring.evidence_scorer import EvidenceScorer, ScoredPool
from evidence_engine.selection.expansion import ContextExpander
from evidence_engine.selection.selector import DiversitySelector

logger = get_logger("evidence_pipeline")

EXCERPT_CHARS = 300


def build_evidence_index(units: Sequence[EvidenceUnit]) -> dict[str, dict]:
    return {
        u.id: {
            "source_id": u.source_id,
            "page_number": u.page_number,
            "paragraph_index": u.paragraph_index,
            "excerpt": u.text[:EXCERPT_CHARS],
            "is_expanded_context": u.is_expanded_context,
        }
        for u in units
    }


class EvidencePipeline:
    def __init__(
        self,
        embedder: Embedder,
        search: VectorSearch,
        catalog: SourceCatalog,
        llm: GenerationService,
        admission: AdmissionController,
        settings: Settings,
    ) -> None:
        self._embedder = embedder
        self._search = search
        self._catalog = catalog
        self._admission = admission
        self._settings = settings
        self._scorer = EvidenceScorer(settings)
        self._reranker = ArgumentReranker(settings)
        self._selector = DiversitySelector(settings)
        self._expander = ContextExpander(catalog, settings)
        self._generator = DocumentGenerator(
            llm, settings, throttle_listener=admission.report_throttle
        )
        self._synthesizer = DocumentGenerator(
            llm,
            settings,
            throttle_listener=admission.report_throttle,
            temperature=settings.synthesis_temperature,
            max_tokens=settings.synthesis_max_tokens,
        )
        self._validator = OutputValidator()
        self._coverage = CoverageScorer(settings)

    @staticmethod
    def _require(query: str, scope_id: str) -> None:
        if not query or not query.strip():
            raise InputError("A query is required")
        if not scope_id or not scope_id.strip():
            raise InputError("A scope id is required")

    async def _rank(self, query: str, scope_id: str, trace: TraceContext) -> tuple[ScoredPool, dict[str, SourceRecord]]:
        with trace.span("embedding"):
            vector = await self._embedder.embed_query(query)

        with trace.span("retrieval"):
            candidates = await self._search.search(
                vector, scope_id, limit=self._settings.retrieval_pool_size
            )
            sources = {s.id: s for s in await self._catalog.list_sources(scope_id)}

        with trace.span("scoring", candidates=len(candidates)):
            pool = self._scorer.score(candidates, query, sources)

        log_scoring_metrics(
            trace.trace_id,
            [u.derived_score for u in pool.units],
            len(pool.units),
            len({u.source_id for u in pool.units}),
            len(pool.groups),
        )
        return pool, sources

    async def retrieve(self, query: str, scope_id: str) -> list[EvidenceUnit]:
        """Ranked evidence for a query. Read-only: no generation, no locking."""
        self._require(query, scope_id)
        trace = TraceContext()
        pool, _ = await self._rank(query, scope_id, trace)
        logger.info("retrieve_complete", scope_id=scope_id, units=len(pool.units), **trace.summary())
        return pool.units

    async def synthesize(
        self, query: str, scope_id: str, document_type: str | None = None
    ) -> SynthesisResponse:
        """Propose argumentation lines over the ranked evidence for a query."""
        self._require(query, scope_id)
        trace = TraceContext()
        pool, sources = await self._rank(query, scope_id, trace)
        if not pool.units:
            raise InputError(f"No evidence found in scope {scope_id!r}")

        s = self._settings
        prompt = build_synthesis_prompt(
            query,
            pool.units,
            sources,
            document_type,
            excerpt_units=s.synthesis_excerpt_units,
            excerpt_chars=s.synthesis_excerpt_chars,
        )
        with trace.span("synthesis", prompt_chars=len(prompt)):
            text = await self._synthesizer.generate(prompt)
        synthesis = parse_synthesis_output(text)

        logger.info(
            "synthesize_complete",
            scope_id=scope_id,
            lines=len(synthesis.argumentation_lines),
            **trace.summary(),
        )
        return synthesis

    async def generate(
        self,
        query: str,
        scope_id: str,
        caller_id: str,
        approach: Approach | None = None,
        word_limit: int | None = None,
        document_type: str | None = None,
    ) -> GenerationRun | QueueTicket:
        self._require(query, scope_id)
        if not caller_id:
            raise InputError("A caller id is required")
        if word_limit is not None and word_limit <= 0:
            raise InputError("word_limit must be positive")

        max_words = self._settings.max_word_limit
        if word_limit is None:
            word_limit = detect_word_limit(query, max_words)
            if word_limit is not None:
                logger.info("word_limit_detected", word_limit=word_limit)
        plan = plan_document(word_limit, max_words)

        trace = TraceContext()
        pool, sources = await self._rank(query, scope_id, trace)
        if not pool.units:
            raise InputError(f"No evidence found in scope {scope_id!r}")

        profile = build_argument_profile(approach)
        if profile is not None:
            with trace.span("argument_rerank"):
                pool = ScoredPool(
                    units=self._reranker.rerank(pool.units, profile),
                    groups=pool.groups,
                    markers=pool.markers,
                )

        job = functools.partial(
            self._compose, query, pool, sources, approach, plan, document_type, trace
        )
        outcome = await self._admission.submit(caller_id, job)
        if isinstance(outcome, QueueTicket):
            logger.info(
                "generate_queued",
                caller_id=caller_id,
                ticket_id=outcome.ticket_id,
                position=outcome.position,
            )
        return outcome

    async def _compose(
        self,
        query: str,
        pool: ScoredPool,
        sources: dict[str, SourceRecord],
        approach: Approach | None,
        plan: DocumentPlan,
        document_type: str | None,
        trace: TraceContext,
    ) -> GenerationRun:
        """Selection through validation; runs under admission control."""
        with trace.span("selection"):
            selection = self._selector.select(pool)
        if not selection.units:
            raise InputError("No evidence unit fits within the character budget")
        log_selection_metrics(
            trace.trace_id,
            selection.strategy,
            len(selection.units),
            selection.used_chars,
            selection.budget.max_total_chars,
            selection.source_counts,
        )

        with trace.span("expansion"):
            selection = await self._expander.expand(selection, pool.units)

        prompt = build_reasoning_prompt(
            query, selection.units, sources, approach, plan, document_type
        )
        with trace.span("generation", prompt_chars=len(prompt)):
            text = await self._generator.generate(prompt)

        with trace.span("validation"):
            output = parse_generation_output(text)
            validated = self._validator.validate(output, selection.units)
            coverage = self._coverage.score(selection.units, validated.output)

        log_coverage_metrics(
            trace.trace_id,
            coverage.quality_score,
            coverage.used_source_count,
            coverage.required_source_count,
            coverage.total_citations,
        )
        logger.info("generate_complete", **trace.summary())

        return GenerationRun(
            document=validated.output.model_dump(),
            evidence_index=build_evidence_index(selection.units),
            coverage=coverage,
            selection=selection,
            warnings=validated.warnings,
        )
