"""Priority-tiered quota selection.

1. Primary-authority sources first, preferring whole argument groups.
2. The best unit that fits from every remaining source.
3. Round-robin quota fill across the target sources, unselected first.
4. Best remaining units under the hard per-source cap while capacity remains.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence

from evidence_engine.config.settings import Settings
from evidence_engine.models.domain import EvidenceUnit, SelectionBudget
from evidence_engine.observability.logger import get_logger
from evidence_engine.selection.state import SelectionState

logger = get_logger("tiered_selector")


class TieredSelector:
    name = "tiered"

    def __init__(self, settings: Settings) -> None:
        self._fill_threshold = settings.tiered_fill_threshold
        self._group_min_size = settings.primary_group_min_size
        self._primary_best = settings.primary_best_units

    def select(
        self,
        units: Sequence[EvidenceUnit],
        budget: SelectionBudget,
        groups: Mapping[str, tuple[str, ...]] | None = None,
    ) -> SelectionState:
        state = SelectionState(budget)
        by_source = self._by_source(units)
        ranked_sources = sorted(
            by_source, key=lambda sid: (-by_source[sid][0].derived_score, sid)
        )

        primary = [sid for sid in ranked_sources if by_source[sid][0].is_primary_authority]
        secondary = [sid for sid in ranked_sources if sid not in primary]

        self._primary_pass(state, primary, by_source, groups or {})
        primary_count = len(state.units)

        for sid in secondary:
            for unit in by_source[sid]:
                if state.fits(unit):
                    state.add(unit)
                    break
        coverage_count = len(state.units) - primary_count

        self._round_robin(state, ranked_sources, by_source)
        quota_count = len(state.units) - primary_count - coverage_count

        if state.used_chars < budget.max_total_chars * self._fill_threshold:
            for unit in sorted(units, key=lambda u: (-u.derived_score, u.id)):
                if state.exhausted:
                    break
                if state.fits(unit):
                    state.add(unit)

        logger.info(
            "tiered_selection",
            primary_units=primary_count,
            coverage_units=coverage_count,
            quota_units=quota_count,
            fill_units=len(state.units) - primary_count - coverage_count - quota_count,
            used_chars=state.used_chars,
        )
        return state

    def _primary_pass(
        self,
        state: SelectionState,
        primary: list[str],
        by_source: dict[str, list[EvidenceUnit]],
        groups: Mapping[str, tuple[str, ...]],
    ) -> None:
        for sid in primary:
            source_units = {u.id: u for u in by_source[sid]}
            candidates = []
            for group_id, member_ids in groups.items():
                if not group_id.startswith(f"{sid}_arg_"):
                    continue
                members = [source_units[m] for m in member_ids if m in source_units]
                if len(members) >= self._group_min_size:
                    candidates.append(members)
            candidates.sort(key=lambda ms: -max(m.derived_score for m in ms))

            for members in candidates:
                if state.fits_group(members):
                    for member in members:
                        state.add(member)
                    break
            else:
                for unit in by_source[sid][: self._primary_best]:
                    if state.fits(unit):
                        state.add(unit)

    def _round_robin(
        self,
        state: SelectionState,
        ranked_sources: list[str],
        by_source: dict[str, list[EvidenceUnit]],
    ) -> None:
        budget = state.budget
        unselected = [sid for sid in ranked_sources if state.count(sid) == 0]
        selected = [sid for sid in ranked_sources if state.count(sid) > 0]
        quota_sources = (unselected + selected)[: budget.target_source_count]
        if not quota_sources:
            return

        cap = min(budget.max_units_per_source, budget.hard_max_units_per_source)
        rotation = 0
        while not state.exhausted:
            added = False
            for offset in range(len(quota_sources)):
                sid = quota_sources[(rotation + offset) % len(quota_sources)]
                if state.count(sid) >= cap:
                    continue
                for unit in by_source[sid]:
                    if state.fits(unit, cap=cap):
                        state.add(unit)
                        added = True
                        break
            rotation += 1
            if not added:
                break

    @staticmethod
    def _by_source(units: Sequence[EvidenceUnit]) -> dict[str, list[EvidenceUnit]]:
        grouped: dict[str, list[EvidenceUnit]] = defaultdict(list)
        for unit in units:
            grouped[unit.source_id].append(unit)
        for members in grouped.values():
            members.sort(key=lambda u: (-u.derived_score, u.id))
        return dict(grouped)
