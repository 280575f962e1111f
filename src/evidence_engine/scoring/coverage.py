"""Source coverage and citation quality: an informational score in [0, 100].

QUALITY = wc*coverage + wp*primary_coverage + wd*min(density/sat, 1) + ws*min(strength, cap)
"""

from __future__ import annotations

from collections.abc import Sequence

from evidence_engine.config.settings import Settings
from evidence_engine.generation.output_models import GenerationOutput
from evidence_engine.models.domain import CoverageReport, EvidenceUnit, SourceCitationStats
from evidence_engine.observability.logger import get_logger

logger = get_logger("coverage")

USAGE_STRENGTH = {"direct": 3, "substantial": 2, "reference": 1}


class CoverageScorer:
    def __init__(self, settings: Settings) -> None:
        self.w_coverage = settings.quality_w_coverage
        self.w_primary = settings.quality_w_primary
        self.w_density = settings.quality_w_density
        self.w_strength = settings.quality_w_strength
        self.density_saturation = settings.quality_density_saturation
        self.strength_cap = settings.quality_strength_cap

    def score(
        self, working_set: Sequence[EvidenceUnit], output: GenerationOutput
    ) -> CoverageReport:
        unit_source = {u.id: u.source_id for u in working_set}
        stats: dict[str, SourceCitationStats] = {}
        primary_sources: set[str] = set()
        for unit in working_set:
            entry = stats.get(unit.source_id)
            if entry is None:
                entry = stats[unit.source_id] = SourceCitationStats(
                    source_id=unit.source_id,
                    source_type=unit.source_type,
                    total_units=0,
                )
            entry.total_units += 1
            if unit.is_primary_authority:
                primary_sources.add(unit.source_id)

        total_citations = 0
        strength_points = 0
        cited_sources: set[str] = set()
        for _, paragraph in output.iter_paragraphs():
            for citation in paragraph.citations or []:
                sid = unit_source.get(citation.evidence_id)
                if sid is None or citation.usage_type not in USAGE_STRENGTH:
                    continue
                entry = stats[sid]
                entry.citations += 1
                setattr(entry, citation.usage_type, getattr(entry, citation.usage_type) + 1)
                cited_sources.add(sid)
                total_citations += 1
                strength_points += USAGE_STRENGTH[citation.usage_type]

        required = len(stats)
        coverage_ratio = len(cited_sources) / required if required else 0.0
        primary_cited = len(primary_sources & cited_sources)
        primary_ratio = primary_cited / len(primary_sources) if primary_sources else 1.0
        density = total_citations / max(len(output.sections), 1)
        strength = strength_points / total_citations if total_citations else 0.0

        breakdown = {
            "coverage": self.w_coverage * coverage_ratio,
            "primary_authority": self.w_primary * primary_ratio,
            "density": self.w_density * min(density / self.density_saturation, 1.0),
            "strength": self.w_strength * min(strength, self.strength_cap),
        }
        quality = max(0.0, min(100.0, sum(breakdown.values())))

        missing = [sid for sid in stats if sid not in cited_sources]
        report = CoverageReport(
            required_source_count=required,
            used_source_count=len(cited_sources),
            missing_source_ids=missing,
            quality_score=round(quality, 2),
            total_citations=total_citations,
            citation_density=round(density, 2),
            primary_authority_coverage=f"{primary_cited}/{len(primary_sources)}",
            source_stats=list(stats.values()),
            breakdown={k: round(v, 2) for k, v in breakdown.items()},
        )

        if missing:
            logger.warning(
                "unused_sources",
                missing_source_ids=missing,
                required_count=required,
                used_count=len(cited_sources),
                quality_score=report.quality_score,
            )
        else:
            logger.info(
                "full_source_coverage",
                source_count=required,
                quality_score=report.quality_score,
            )
        return report
