"""Argument-aware re-ranking: bias scores toward a caller's argumentation line."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from evidence_engine.config.settings import Settings
from evidence_engine.models.domain import ArgumentProfile, EvidenceUnit
from evidence_engine.models.schemas import Approach
from evidence_engine.observability.logger import get_logger
from evidence_engine.text.tokenizer import significant_words

logger = get_logger("argument_reranker")


def build_argument_profile(approach: Approach | None) -> ArgumentProfile | None:
    """Flatten the approach payload into lower-cased term sets.

    Returns None when the approach carries nothing to bias toward.
    """
    if approach is None:
        return None

    lines = list(approach.combined_lines)
    if approach.argumentation_line is not None:
        lines.insert(0, approach.argumentation_line)

    focus: set[str] = set()
    for area in approach.focus_areas + [a for line in lines for a in line.focus_areas]:
        focus |= significant_words(area)

    topics: list[str] = []
    plans = list(approach.sections) + [
        s for line in lines for s in line.structure.sections
    ]
    for plan in plans:
        topic = plan.title.strip().lower()
        if topic and topic not in topics:
            topics.append(topic)

    approach_terms: set[str] = set()
    for line in lines:
        approach_terms |= significant_words(line.approach)
    if approach.structure_type:
        approach_terms |= significant_words(approach.structure_type.replace("_", " "))

    profile = ArgumentProfile(
        focus_terms=frozenset(focus),
        section_topics=tuple(topics),
        approach_terms=frozenset(approach_terms),
    )
    return None if profile.is_empty else profile


def topic_matches(topic: str, text_lower: str, text_words: frozenset[str]) -> bool:
    """Direct substring match, or at least two shared significant words."""
    if topic in text_lower:
        return True
    return len(significant_words(topic) & text_words) >= 2


class ArgumentReranker:
    def __init__(self, settings: Settings) -> None:
        self._focus_cap = settings.rerank_focus_cap
        self._topic_cap = settings.rerank_topic_cap
        self._approach_cap = settings.rerank_approach_cap

    def rerank(
        self, units: Sequence[EvidenceUnit], profile: ArgumentProfile | None
    ) -> list[EvidenceUnit]:
        if profile is None or profile.is_empty:
            return list(units)

        boosted = []
        for unit in units:
            bonus = self.bonus(unit.text, profile)
            boosted.append(replace(unit, derived_score=unit.derived_score + bonus))
        boosted.sort(key=lambda u: (-u.derived_score, u.id))

        logger.info(
            "argument_rerank",
            focus_terms=len(profile.focus_terms),
            section_topics=len(profile.section_topics),
            approach_terms=len(profile.approach_terms),
            top_scores=[round(u.derived_score, 4) for u in boosted[:5]],
        )
        return boosted

    def bonus(self, text: str, profile: ArgumentProfile) -> float:
        lower = text.lower()
        words = significant_words(text)
        total = 0.0

        if profile.focus_terms:
            hits = sum(1 for t in profile.focus_terms if t in lower)
            total += min(self._focus_cap, hits / len(profile.focus_terms) * self._focus_cap)

        if profile.section_topics:
            hits = sum(1 for t in profile.section_topics if topic_matches(t, lower, words))
            total += min(
                self._topic_cap, hits / len(profile.section_topics) * self._topic_cap
            )

        if profile.approach_terms:
            hits = sum(1 for t in profile.approach_terms if t in lower)
            total += min(
                self._approach_cap, hits / len(profile.approach_terms) * self._approach_cap
            )

        return total
