"""Argument group detection as a finite-state reducer over ordered units.

A group is a contiguous run of units from one source. The reducer sees units
in ``sequence_index`` order and opens a new group when a unit carries a strong
marker (cross-reference or discourse connective) or when the positional gap
to the previous unit exceeds ``gap_threshold``.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import reduce

from evidence_engine.config.constants import STRONG_MARKERS
from evidence_engine.models.domain import EvidenceUnit


@dataclass(frozen=True)
class GroupingState:
    gap_threshold: int
    groups: tuple[tuple[str, ...], ...] = ()
    current: tuple[str, ...] = ()
    last_index: int | None = None


def step(
    state: GroupingState, unit: EvidenceUnit, markers: Iterable[str]
) -> GroupingState:
    strong = any(m in STRONG_MARKERS for m in markers)
    gap = (
        unit.sequence_index - state.last_index
        if state.last_index is not None
        else 0
    )
    if state.current and (strong or gap > state.gap_threshold):
        return GroupingState(
            gap_threshold=state.gap_threshold,
            groups=state.groups + (state.current,),
            current=(unit.id,),
            last_index=unit.sequence_index,
        )
    return GroupingState(
        gap_threshold=state.gap_threshold,
        groups=state.groups,
        current=state.current + (unit.id,),
        last_index=unit.sequence_index,
    )


def finish(state: GroupingState) -> tuple[tuple[str, ...], ...]:
    if state.current:
        return state.groups + (state.current,)
    return state.groups


def detect_argument_groups(
    units: Iterable[EvidenceUnit],
    markers: Mapping[str, tuple[str, ...]],
    gap_threshold: int = 5,
) -> dict[str, tuple[str, ...]]:
    """Return ``{group_id: unit_ids}`` with ids of the form ``{source}_arg_{n}``."""
    by_source: dict[str, list[EvidenceUnit]] = defaultdict(list)
    for unit in units:
        by_source[unit.source_id].append(unit)

    groups: dict[str, tuple[str, ...]] = {}
    for source_id in sorted(by_source):
        ordered = sorted(by_source[source_id], key=lambda u: (u.sequence_index, u.id))
        final = reduce(
            lambda s, u: step(s, u, markers.get(u.id, ())),
            ordered,
            GroupingState(gap_threshold=gap_threshold),
        )
        for n, member_ids in enumerate(finish(final)):
            groups[f"{source_id}_arg_{n}"] = member_ids
    return groups
