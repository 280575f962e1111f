"""Maximal marginal relevance selection under a character budget."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

from evidence_engine.config.settings import Settings
from evidence_engine.models.domain import EvidenceUnit, SelectionBudget
from evidence_engine.observability.logger import get_logger
from evidence_engine.selection.state import SelectionState
from evidence_engine.text.tokenizer import jaccard, token_set

logger = get_logger("mmr_selector")


class MMRSelector:
    name = "mmr"

    def __init__(self, settings: Settings) -> None:
        self._lam = settings.mmr_lambda
        self._diversity_bonus = settings.mmr_diversity_bonus
        self._duplicate_threshold = settings.mmr_duplicate_threshold

    def select(
        self,
        units: Sequence[EvidenceUnit],
        budget: SelectionBudget,
        groups: Mapping[str, tuple[str, ...]] | None = None,
    ) -> SelectionState:
        state = SelectionState(budget)
        if not units:
            return state

        relevance = self._normalize(units)
        tokens = {u.id: token_set(u.text) for u in units}
        remaining = list(units)
        selected_tokens: list[frozenset[str]] = []
        overlaps: list[float] = []
        skipped: set[str] = set()

        while remaining and not state.exhausted:
            best: EvidenceUnit | None = None
            best_score = -math.inf
            best_overlap = 0.0
            for unit in remaining:
                if not state.fits(unit):
                    continue
                overlap = max(
                    (jaccard(tokens[unit.id], other) for other in selected_tokens),
                    default=0.0,
                )
                if overlap >= self._duplicate_threshold:
                    skipped.add(unit.id)
                    continue
                score = (
                    self._lam * relevance[unit.id]
                    - (1.0 - self._lam) * overlap
                    + self._source_bonus(state, unit.source_id)
                )
                if score > best_score or (
                    score == best_score and best is not None and unit.id < best.id
                ):
                    best, best_score, best_overlap = unit, score, overlap
            if best is None:
                break
            state.add(best)
            selected_tokens.append(tokens[best.id])
            overlaps.append(best_overlap)
            remaining.remove(best)

        logger.info(
            "mmr_selection",
            selected=len(state.units),
            used_chars=state.used_chars,
            lam=self._lam,
            mean_overlap=round(sum(overlaps) / len(overlaps), 4) if overlaps else 0.0,
            near_duplicates_skipped=len(skipped),
        )
        return state

    def _source_bonus(self, state: SelectionState, source_id: str) -> float:
        """Small bonus that shrinks as a source gains representation."""
        cap = state.budget.hard_max_units_per_source
        return self._diversity_bonus * (1.0 - state.count(source_id) / cap)

    @staticmethod
    def _normalize(units: Sequence[EvidenceUnit]) -> dict[str, float]:
        scores = [u.derived_score for u in units]
        low, high = min(scores), max(scores)
        if high - low < 1e-12:
            return {u.id: 1.0 for u in units}
        return {u.id: (u.derived_score - low) / (high - low) for u in units}
