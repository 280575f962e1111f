"""Diversity selector: budget derivation plus the configured selection strategy."""

from __future__ import annotations

from evidence_engine.config.settings import Settings
from evidence_engine.models.domain import SelectionResult
from evidence_engine.observability.logger import get_logger
from evidence_engine.scoring.evidence_scorer import ScoredPool
from evidence_engine.selection.budget import derive_budget
from evidence_engine.selection.mmr import MMRSelector
from evidence_engine.selection.tiered import TieredSelector

logger = get_logger("diversity_selector")


class DiversitySelector:
    def __init__(self, settings: Settings, strategy: str | None = None) -> None:
        self._settings = settings
        name = strategy or settings.selection_strategy
        if name == "mmr":
            self._strategy = MMRSelector(settings)
        else:
            self._strategy = TieredSelector(settings)

    @property
    def strategy_name(self) -> str:
        return self._strategy.name

    def select(
        self, pool: ScoredPool, max_total_chars: int | None = None
    ) -> SelectionResult:
        budget = derive_budget(pool.units, self._settings, max_total_chars)
        logger.info(
            "selection_budget",
            max_total_chars=budget.max_total_chars,
            target_sources=budget.target_source_count,
            max_per_source=budget.max_units_per_source,
            hard_max_per_source=budget.hard_max_units_per_source,
            estimated_units=budget.estimated_unit_count,
        )

        state = self._strategy.select(pool.units, budget, pool.groups)
        return SelectionResult(
            units=list(state.units),
            used_chars=state.used_chars,
            source_counts=dict(state.counts),
            budget=budget,
            strategy=self._strategy.name,
        )
