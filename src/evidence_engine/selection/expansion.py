"""Adjacent-context expansion for primary-authority evidence.

Statutes, treaties and similar sources are chunked at hard boundaries that can
split a provision. Each selected primary-authority unit pulls in its
neighbours (within ``radius`` positions) from the catalog, as long as the
working set stays under ``overflow * max_total_chars``. The returned
``source_counts`` include the expanded neighbours.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import replace

from evidence_engine.config.settings import Settings
from evidence_engine.exceptions import CatalogError
from evidence_engine.models.domain import EvidenceUnit, SelectionResult
from evidence_engine.observability.logger import get_logger
from evidence_engine.protocols.catalog import SourceCatalog

logger = get_logger("context_expansion")


class ContextExpander:
    def __init__(self, catalog: SourceCatalog, settings: Settings) -> None:
        self._catalog = catalog
        self._radius = settings.expansion_radius
        self._overflow = settings.expansion_overflow

    async def expand(
        self,
        selection: SelectionResult,
        scored_pool: Sequence[EvidenceUnit] = (),
    ) -> SelectionResult:
        primary_sources = [
            sid
            for sid in dict.fromkeys(u.source_id for u in selection.units)
            if any(u.is_primary_authority for u in selection.units if u.source_id == sid)
        ]
        if not primary_sources:
            return selection

        limit = selection.budget.max_total_chars * self._overflow
        scored = {u.id: u for u in scored_pool}
        chosen = {u.id for u in selection.units}
        used = selection.used_chars
        neighbours: dict[str, list[EvidenceUnit]] = defaultdict(list)

        for sid in primary_sources:
            try:
                siblings = await self._catalog.list_units_by_source(sid)
            except CatalogError as e:
                logger.warning("expansion_catalog_failed", source_id=sid, error=str(e))
                continue
            by_position = {s.sequence_index: s for s in siblings}
            anchors = [u for u in selection.units if u.source_id == sid]
            fallback_score = sum(a.derived_score for a in anchors) / len(anchors)

            for anchor in anchors:
                for offset in range(-self._radius, self._radius + 1):
                    if offset == 0:
                        continue
                    sibling = by_position.get(anchor.sequence_index + offset)
                    if sibling is None or sibling.id in chosen:
                        continue
                    if used + sibling.length > limit:
                        continue
                    base = scored.get(sibling.id)
                    if base is None:
                        base = replace(
                            sibling,
                            source_type=anchor.source_type,
                            source_category=anchor.source_category,
                            derived_score=fallback_score,
                        )
                    neighbours[anchor.id].append(replace(base, is_expanded_context=True))
                    chosen.add(sibling.id)
                    used += sibling.length

        units: list[EvidenceUnit] = []
        for unit in selection.units:
            units.append(unit)
            units.extend(sorted(neighbours.get(unit.id, []), key=lambda n: n.sequence_index))

        counts = dict(selection.source_counts)
        for added_units in neighbours.values():
            for unit in added_units:
                counts[unit.source_id] = counts.get(unit.source_id, 0) + 1

        added = len(units) - len(selection.units)
        logger.info(
            "context_expanded",
            original_units=len(selection.units),
            expanded_units=added,
            primary_sources=len(primary_sources),
            used_chars=used,
        )
        return SelectionResult(
            units=units,
            used_chars=used,
            source_counts=counts,
            budget=selection.budget,
            strategy=selection.strategy,
        )
