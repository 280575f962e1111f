"""Shared test fixtures."""

from __future__ import annotations

import json
import re
import tempfile
from pathlib import Path

import pytest

from evidence_engine.catalog.memory_corpus import MemoryCorpus
from evidence_engine.config.settings import Settings
from evidence_engine.exceptions import CatalogError, ThrottlingError
from evidence_engine.models.domain import EvidenceUnit, SourceRecord
from evidence_engine.models.source_types import category_for

EVIDENCE_ID_RE = re.compile(r"^\[([^\]\s]+)\]$", re.MULTILINE)


def make_unit(
    uid: str,
    source_id: str = "s1",
    source_type: str = "journal_article",
    text: str | None = None,
    similarity: float = 0.8,
    derived_score: float = 0.0,
    sequence_index: int = 0,
    page_number: int = 1,
    paragraph_index: int = 0,
    length: int = 100,
) -> EvidenceUnit:
    if text is None:
        text = f"evidence {uid} ".ljust(length, ".")
    return EvidenceUnit(
        id=uid,
        source_id=source_id,
        source_category=category_for(source_type),
        source_type=source_type,
        page_number=page_number,
        paragraph_index=paragraph_index,
        sequence_index=sequence_index,
        text=text,
        similarity=similarity,
        derived_score=derived_score,
    )


def document_json(paragraphs: list[dict], title: str = "Analysis") -> str:
    return json.dumps(
        {"sections": [{"section_index": 1, "title": title, "paragraphs": paragraphs}]}
    )


def synthesis_json(titles: list[str]) -> str:
    return json.dumps(
        {
            "argumentation_lines": [
                {
                    "title": title,
                    "description": f"Argue {title.lower()}",
                    "structure": {"sections": [{"section_index": 1, "title": "Introduction"}]},
                    "approach": "doctrinal",
                    "focus_areas": ["consent"],
                    "tone": "analytical",
                }
                for title in titles
            ],
            "recommended_structure": {"type": "traditional", "sections": []},
            "personalization_options": {
                "tone_options": [{"value": "critical", "label": "Critical"}],
            },
        }
    )


class FakeEmbedder:
    def __init__(self, vector: list[float] | None = None) -> None:
        self.vector = vector or [1.0, 0.0, 0.0, 0.0]
        self.calls = 0

    @property
    def dimensions(self) -> int:
        return len(self.vector)

    async def embed_query(self, query: str) -> list[float]:
        self.calls += 1
        return list(self.vector)


class CitingLLM:
    """Cites every evidence id found in the prompt, one paragraph per id.

    ``throttles`` leading calls raise ThrottlingError before any text is produced.
    """

    def __init__(self, throttles: int = 0, raw: str | None = None) -> None:
        self.throttles = throttles
        self.raw = raw
        self.calls = 0
        self.prompts: list[str] = []

    async def generate_stream(self, prompt: str, max_tokens: int = 8192, temperature: float = 0.2):
        self.calls += 1
        self.prompts.append(prompt)
        if self.calls <= self.throttles:
            raise ThrottlingError("rate limited")
        if self.raw is not None:
            text = self.raw
        else:
            ids = EVIDENCE_ID_RE.findall(prompt)
            text = "Here is the document:\n" + document_json(
                [
                    {
                        "paragraph_index": n,
                        "text": f"Claim {n} [{eid}]",
                        "evidence_ids": [eid],
                        "citations": [{"evidence_id": eid, "usage_type": "substantial"}],
                    }
                    for n, eid in enumerate(ids, 1)
                ]
            )
        for start in range(0, len(text), 64):
            yield text[start : start + 64]


class FakeCatalog:
    def __init__(self, units: list[EvidenceUnit], failing: set[str] | None = None) -> None:
        self._units = units
        self._failing = failing or set()

    async def list_sources(self, scope_id: str) -> list[SourceRecord]:
        seen = {}
        for u in self._units:
            seen.setdefault(u.source_id, SourceRecord(u.source_id, u.source_type, u.source_id))
        return list(seen.values())

    async def list_units_by_source(self, source_id: str) -> list[EvidenceUnit]:
        if source_id in self._failing:
            raise CatalogError(f"catalog unavailable for {source_id}")
        return sorted(
            (u for u in self._units if u.source_id == source_id),
            key=lambda u: u.sequence_index,
        )


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def tmp_dir():
    """Create a temporary directory."""
    return tempfile.mkdtemp()


@pytest.fixture
def settings(tmp_dir):
    """Test settings with temp paths and no real backoff."""
    return Settings(
        openai_api_key="test-key",
        google_api_key="test-key",
        embedding_dimensions=4,
        embedding_cache_db_path=str(Path(tmp_dir) / "cache.db"),
        corpus_path=str(Path(tmp_dir) / "corpus.json"),
        generation_retry_base_seconds=0.0,
        generation_retry_max_seconds=0.0,
        api_keys="test-key",
        jwt_secret="test-secret",
    )


@pytest.fixture
def corpus():
    """Three sources in scope "proj": a statute, a case and an article."""
    c = MemoryCorpus(dimensions=4)
    c.add_source(SourceRecord("statute-1", "statute", "Data Protection Act"), "proj")
    c.add_source(SourceRecord("case-1", "case", "Smith v. Jones"), "proj")
    c.add_source(SourceRecord("article-1", "journal_article", "Brown, 2021, Consent"), "proj")
    c.add_source(SourceRecord("other-scope", "website", "Elsewhere"), "other")

    units, vectors = [], []
    rows = [
        ("statute-1", 0, "Personal data shall be processed lawfully and fairly.", [1.0, 0.1, 0.0, 0.0]),
        ("statute-1", 1, "Data shall be collected for specified and legitimate purposes.", [0.9, 0.2, 0.0, 0.0]),
        ("statute-1", 2, "Processing for archiving purposes is not incompatible with those purposes.", [0.2, 1.0, 0.0, 0.0]),
        ("case-1", 0, "The court held that pre-ticked boxes are not valid consent.", [0.8, 0.0, 0.3, 0.0]),
        ("case-1", 1, "The claimant sought damages for distress caused by the processing.", [0.5, 0.0, 0.6, 0.0]),
        ("article-1", 0, "Scholars question whether consent can bear its normative weight.", [0.7, 0.0, 0.0, 0.4]),
        ("other-scope", 0, "Unrelated website content about gardening.", [1.0, 0.0, 0.0, 0.0]),
    ]
    for source_id, seq, text, vec in rows:
        units.append(
            {
                "id": f"{source_id}-u{seq}",
                "source_id": source_id,
                "page_number": 1 + seq,
                "paragraph_index": seq,
                "sequence_index": seq,
                "text": text,
            }
        )
        vectors.append(vec)
    c.add_units(units, vectors)
    return c


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def llm():
    return CitingLLM()
