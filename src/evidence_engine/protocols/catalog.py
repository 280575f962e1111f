"""Protocol for the source catalog."""

from __future__ import annotations

from typing import Protocol

from evidence_engine.models.domain import EvidenceUnit, SourceRecord


class SourceCatalog(Protocol):
    async def list_sources(self, scope_id: str) -> list[SourceRecord]: ...

    async def list_units_by_source(self, source_id: str) -> list[EvidenceUnit]:
        """Units of one source ordered by sequence index."""
        ...
