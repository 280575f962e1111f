"""Metric recording helpers for traces."""

from __future__ import annotations

from evidence_engine.observability.logger import get_logger

logger = get_logger("metrics")


def log_scoring_metrics(
    trace_id: str,
    top_scores: list[float],
    num_candidates: int,
    unique_sources: int,
    argument_groups: int,
) -> None:
    logger.info(
        "scoring_metrics",
        trace_id=trace_id,
        top_scores=[round(s, 4) for s in top_scores[:5]],
        num_candidates=num_candidates,
        unique_sources=unique_sources,
        argument_groups=argument_groups,
    )


def log_selection_metrics(
    trace_id: str,
    strategy: str,
    units: int,
    used_chars: int,
    max_chars: int,
    source_counts: dict[str, int],
) -> None:
    logger.info(
        "selection_metrics",
        trace_id=trace_id,
        strategy=strategy,
        units=units,
        used_chars=used_chars,
        budget_utilization=round(used_chars / max_chars, 4) if max_chars else 0.0,
        sources=len(source_counts),
        max_per_source=max(source_counts.values(), default=0),
    )


def log_coverage_metrics(
    trace_id: str,
    quality_score: float,
    used_sources: int,
    required_sources: int,
    total_citations: int,
) -> None:
    logger.info(
        "coverage_metrics",
        trace_id=trace_id,
        quality_score=quality_score,
        used_sources=used_sources,
        required_sources=required_sources,
        total_citations=total_citations,
    )


def log_latency(trace_id: str, stage: str, duration_ms: float) -> None:
    logger.info(
        "latency",
        trace_id=trace_id,
        stage=stage,
        duration_ms=round(duration_ms, 2),
    )
