"""In-memory evidence corpus: numpy cosine search plus the source catalog.

Serves both the VectorSearch and SourceCatalog contracts from one JSON file:

    {"sources": [{"id", "scope_id", "source_type", "title"}, ...],
     "units":   [{"id", "source_id", "page_number", "paragraph_index",
                  "sequence_index", "text", "embedding"}, ...]}
"""

from __future__ import annotations

import json
import os
from collections import defaultdict
from pathlib import Path

import numpy as np

from evidence_engine.exceptions import CatalogError, RetrievalError
from evidence_engine.models.domain import EvidenceUnit, SourceRecord
from evidence_engine.models.source_types import category_for
from evidence_engine.observability.logger import get_logger

logger = get_logger("memory_corpus")


class MemoryCorpus:
    def __init__(self, dimensions: int) -> None:
        self._dimensions = dimensions
        self._sources: dict[str, SourceRecord] = {}
        self._scope_sources: dict[str, list[str]] = defaultdict(list)
        self._source_scope: dict[str, str] = {}
        self._units: list[dict] = []
        self._units_by_source: dict[str, list[int]] = defaultdict(list)
        self._matrix = np.zeros((0, dimensions), dtype=np.float32)

    @classmethod
    def load(cls, path: str, dimensions: int) -> MemoryCorpus:
        corpus = cls(dimensions)
        if not os.path.exists(path):
            logger.warning("corpus_missing", path=path)
            return corpus
        with open(path) as f:
            data = json.load(f)
        for source in data.get("sources", []):
            corpus.add_source(
                SourceRecord(source["id"], source.get("source_type", "other"), source.get("title", "")),
                source["scope_id"],
            )
        units = data.get("units", [])
        if units:
            corpus.add_units(units, np.array([u["embedding"] for u in units], dtype=np.float32))
        logger.info(
            "corpus_loaded",
            path=path,
            scopes=corpus.scope_count,
            sources=len(corpus._sources),
            units=corpus.unit_count,
        )
        return corpus

    def save(self, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        sources = [
            {"id": s.id, "scope_id": self._source_scope[s.id], "source_type": s.source_type, "title": s.title}
            for s in self._sources.values()
        ]
        units = [dict(u, embedding=self._matrix[i].tolist()) for i, u in enumerate(self._units)]
        with open(path, "w") as f:
            json.dump({"sources": sources, "units": units}, f)
        logger.info("corpus_saved", path=path, units=len(units))

    def add_source(self, source: SourceRecord, scope_id: str) -> None:
        if source.id not in self._sources:
            self._scope_sources[scope_id].append(source.id)
        self._sources[source.id] = source
        self._source_scope[source.id] = scope_id

    def add_units(self, units: list[dict], embeddings: np.ndarray) -> None:
        """Append unit records with their embeddings; rows are L2-normalised."""
        if len(units) == 0:
            return
        embeddings = np.asarray(embeddings, dtype=np.float32).reshape(len(units), -1)
        if embeddings.shape[1] != self._dimensions:
            raise RetrievalError(
                f"Embedding dimension {embeddings.shape[1]} does not match corpus dimension {self._dimensions}"
            )
        norms = np.linalg.norm(embeddings, axis=1, keepdims=True)
        embeddings = embeddings / np.where(norms == 0, 1.0, norms)

        start = len(self._units)
        for offset, unit in enumerate(units):
            if unit["source_id"] not in self._sources:
                raise CatalogError(f"Unit {unit['id']} references unknown source {unit['source_id']}")
            record = {k: v for k, v in unit.items() if k != "embedding"}
            self._units.append(record)
            self._units_by_source[unit["source_id"]].append(start + offset)
        self._matrix = np.vstack([self._matrix, embeddings])

    @property
    def scope_count(self) -> int:
        return len(self._scope_sources)

    @property
    def unit_count(self) -> int:
        return len(self._units)

    def _to_unit(self, row: int, similarity: float) -> EvidenceUnit:
        record = self._units[row]
        source = self._sources[record["source_id"]]
        return EvidenceUnit(
            id=record["id"],
            source_id=source.id,
            source_category=category_for(source.source_type),
            source_type=source.source_type,
            page_number=int(record.get("page_number", 0)),
            paragraph_index=int(record.get("paragraph_index", 0)),
            sequence_index=int(record.get("sequence_index", 0)),
            text=record["text"],
            similarity=similarity,
        )

    async def search(
        self, query_vector: list[float], scope_id: str, limit: int = 150
    ) -> list[EvidenceUnit]:
        query = np.asarray(query_vector, dtype=np.float32)
        if query.shape != (self._dimensions,):
            raise RetrievalError(
                f"Query vector has shape {query.shape}, expected ({self._dimensions},)"
            )
        rows = [r for sid in self._scope_sources.get(scope_id, []) for r in self._units_by_source[sid]]
        if not rows:
            return []

        norm = np.linalg.norm(query)
        if norm > 0:
            query = query / norm
        scores = self._matrix[rows] @ query
        order = np.argsort(-scores, kind="stable")[:limit]
        return [
            self._to_unit(rows[i], float(np.clip(scores[i], 0.0, 1.0)))
            for i in order
        ]

    async def list_sources(self, scope_id: str) -> list[SourceRecord]:
        return [self._sources[sid] for sid in self._scope_sources.get(scope_id, [])]

    async def list_units_by_source(self, source_id: str) -> list[EvidenceUnit]:
        if source_id not in self._sources:
            raise CatalogError(f"Unknown source {source_id}")
        units = [self._to_unit(r, 0.0) for r in self._units_by_source[source_id]]
        return sorted(units, key=lambda u: u.sequence_index)
