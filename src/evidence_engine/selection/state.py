"""Running bookkeeping shared by the selection strategies."""

from __future__ import annotations

from collections import defaultdict

from evidence_engine.models.domain import EvidenceUnit, SelectionBudget


class SelectionState:
    def __init__(self, budget: SelectionBudget) -> None:
        self.budget = budget
        self.units: list[EvidenceUnit] = []
        self.used_chars = 0
        self.counts: dict[str, int] = defaultdict(int)
        self._ids: set[str] = set()

    def __contains__(self, unit_id: str) -> bool:
        return unit_id in self._ids

    def count(self, source_id: str) -> int:
        return self.counts.get(source_id, 0)

    def fits(self, unit: EvidenceUnit, cap: int | None = None) -> bool:
        limit = self.budget.hard_max_units_per_source if cap is None else cap
        return (
            unit.id not in self._ids
            and self.used_chars + unit.length <= self.budget.max_total_chars
            and self.count(unit.source_id) < limit
        )

    def fits_group(self, members: list[EvidenceUnit]) -> bool:
        if not members or any(m.id in self._ids for m in members):
            return False
        size = sum(m.length for m in members)
        source_id = members[0].source_id
        return (
            self.used_chars + size <= self.budget.max_total_chars
            and self.count(source_id) + len(members)
            <= self.budget.hard_max_units_per_source
        )

    def add(self, unit: EvidenceUnit) -> None:
        self.units.append(unit)
        self._ids.add(unit.id)
        self.used_chars += unit.length
        self.counts[unit.source_id] += 1

    @property
    def exhausted(self) -> bool:
        return self.used_chars >= self.budget.max_total_chars
