"""Citation, cross-reference and discourse-connective detection."""

from __future__ import annotations

import re
from collections.abc import Iterable

from evidence_engine.models.domain import EvidenceUnit

LEGAL_CITATION = "legal_citation"
CROSS_REFERENCE = "cross_reference"
ARGUMENT_CONNECTOR = "argument_connector"

_LEGAL_CITATION_RE = re.compile(
    r"\b\d{4}\b.*?\b\d{4}\b|see\s.*?(\d{4})|\bv\.|\bcf\.|\bid\.|\bsupra\b|\binfra\b",
    re.IGNORECASE,
)

_CROSS_REFERENCE_RES = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"see\s+(?:section|article|paragraph)\s+\d+",
        r"pursuant\s+to\s+(?:section|article)",
        r"in\s+accordance\s+with",
        r"subject\s+to",
        r"notwithstanding",
        r"provided\s+that",
    )
]

_CONNECTOR_RE = re.compile(
    r"\b(however|moreover|furthermore|consequently|therefore|thus|accordingly"
    r"|nevertheless|notwithstanding|whereas)\b",
    re.IGNORECASE,
)


def detect_markers(text: str) -> tuple[str, ...]:
    """Return the marker kinds present in ``text``, each at most once."""
    markers: list[str] = []
    if _LEGAL_CITATION_RE.search(text):
        markers.append(LEGAL_CITATION)
    if any(p.search(text) for p in _CROSS_REFERENCE_RES):
        markers.append(CROSS_REFERENCE)
    if _CONNECTOR_RE.search(text):
        markers.append(ARGUMENT_CONNECTOR)
    return tuple(markers)


def analyze_units(units: Iterable[EvidenceUnit]) -> dict[str, tuple[str, ...]]:
    return {u.id: detect_markers(u.text) for u in units}
