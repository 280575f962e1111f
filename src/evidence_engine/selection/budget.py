"""Selection budget derived from pool size and a fixed per-unit size estimate."""

from __future__ import annotations

import math
from collections.abc import Sequence

from evidence_engine.config.settings import Settings
from evidence_engine.models.domain import EvidenceUnit, SelectionBudget


def derive_budget(
    pool: Sequence[EvidenceUnit],
    settings: Settings,
    max_total_chars: int | None = None,
) -> SelectionBudget:
    max_chars = max_total_chars if max_total_chars is not None else settings.max_evidence_chars
    source_count = len({u.source_id for u in pool})

    target = min(
        source_count,
        max(
            settings.min_target_sources,
            min(
                settings.max_target_sources,
                math.floor(source_count * settings.target_source_fraction),
            ),
        ),
    )
    estimated = max_chars // settings.avg_unit_chars
    max_per_source = max(settings.min_units_per_source, estimated // max(target, 1))
    hard_max = max(
        max_per_source, math.ceil(round(estimated * settings.hard_cap_fraction, 6))
    )

    return SelectionBudget(
        max_total_chars=max_chars,
        max_units_per_source=max_per_source,
        hard_max_units_per_source=hard_max,
        target_source_count=target,
        estimated_unit_count=estimated,
    )
