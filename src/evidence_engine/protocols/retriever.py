"""Protocol for vector-similarity retrieval."""

from __future__ import annotations

from typing import Protocol

from evidence_engine.models.domain import EvidenceUnit


class VectorSearch(Protocol):
    async def search(
        self, query_vector: list[float], scope_id: str, limit: int = 150
    ) -> list[EvidenceUnit]: ...
