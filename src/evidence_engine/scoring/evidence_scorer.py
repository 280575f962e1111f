"""Composite relevance scoring for retrieved evidence units.

derived = similarity * category_weight * length_norm * positional_bias
          + keyword_bonus + coherence_bonus + pattern_bonus
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace

from evidence_engine.config.settings import Settings
from evidence_engine.models.domain import EvidenceUnit, SourceRecord
from evidence_engine.models.source_types import weight_for
from evidence_engine.observability.logger import get_logger
from evidence_engine.scoring.argument_groups import detect_argument_groups
from evidence_engine.scoring.text_signals import analyze_units
from evidence_engine.text.tokenizer import query_terms

logger = get_logger("evidence_scorer")


@dataclass
class ScoredPool:
    units: list[EvidenceUnit]
    groups: dict[str, tuple[str, ...]] = field(default_factory=dict)
    markers: dict[str, tuple[str, ...]] = field(default_factory=dict)


class EvidenceScorer:
    def __init__(self, settings: Settings) -> None:
        self._s = settings

    def score(
        self,
        units: Sequence[EvidenceUnit],
        query: str,
        sources: Mapping[str, SourceRecord] | None = None,
    ) -> ScoredPool:
        """Return scored copies of ``units`` sorted by derived score, descending."""
        if sources:
            units = [self._apply_catalog(u, sources) for u in units]

        markers = analyze_units(units)
        groups = detect_argument_groups(units, markers, self._s.argument_group_gap)
        positions = {
            uid: (len(members), idx)
            for members in groups.values()
            for idx, uid in enumerate(members)
        }
        terms = query_terms(query, self._s.keyword_min_term_length)

        scored = []
        for unit in units:
            base = (
                unit.similarity
                * weight_for(unit.source_type, unit.source_category)
                * self.length_normalization(unit.text)
                * self.positional_bias(unit.page_number)
            )
            derived = (
                base
                + self.keyword_bonus(unit.text, terms)
                + self.coherence_bonus(*positions.get(unit.id, (0, 0)))
                + self._s.pattern_bonus_per_marker * len(markers.get(unit.id, ()))
            )
            scored.append(replace(unit, derived_score=derived))

        scored.sort(key=lambda u: (-u.derived_score, u.id))

        logger.info(
            "units_scored",
            count=len(scored),
            argument_groups=len(groups),
            markers=sum(len(m) for m in markers.values()),
            top_scores=[round(u.derived_score, 4) for u in scored[:5]],
        )
        return ScoredPool(units=scored, groups=groups, markers=markers)

    def length_normalization(self, text: str) -> float:
        ratio = len(text) / self._s.length_norm_chars
        return min(1.0, max(self._s.length_norm_floor, ratio))

    def positional_bias(self, page_number: int) -> float:
        return max(
            self._s.position_bias_floor,
            1.0 - (page_number or 0) / self._s.position_bias_pages,
        )

    def keyword_bonus(self, text: str, terms: list[str]) -> float:
        if not terms:
            return 0.0
        lower = text.lower()
        matches = sum(1 for t in terms if t in lower)
        cap = self._s.keyword_bonus_max
        return min(cap, matches / len(terms) * cap)

    def coherence_bonus(self, group_size: int, position: int) -> float:
        if group_size == 0:
            return 0.0
        bonus = min(self._s.coherence_group_cap, group_size * self._s.coherence_per_unit)
        if position < group_size / 2:
            bonus += self._s.coherence_leading_bonus
        return bonus

    @staticmethod
    def _apply_catalog(unit: EvidenceUnit, sources: Mapping[str, SourceRecord]) -> EvidenceUnit:
        record = sources.get(unit.source_id)
        if record is None:
            return unit
        return replace(
            unit, source_type=record.source_type, source_category=record.category
        )
