"""Integration tests for the in-memory corpus and its JSON persistence."""

from pathlib import Path

import numpy as np
import pytest

from evidence_engine.catalog.memory_corpus import MemoryCorpus
from evidence_engine.exceptions import CatalogError, RetrievalError
from evidence_engine.models.domain import SourceRecord
from evidence_engine.models.source_types import SourceCategory


async def test_search_ranks_by_cosine_similarity(corpus):
    units = await corpus.search([1.0, 0.0, 0.0, 0.0], "proj")
    assert [u.id for u in units] == [
        "statute-1-u0",
        "statute-1-u1",
        "case-1-u0",
        "article-1-u0",
        "case-1-u1",
        "statute-1-u2",
    ]
    assert units[0].similarity == pytest.approx(1 / np.sqrt(1.01), rel=1e-5)
    assert units[0].source_category is SourceCategory.PRIMARY_AUTHORITY


async def test_search_is_scoped(corpus):
    units = await corpus.search([1.0, 0.0, 0.0, 0.0], "other")
    assert [u.id for u in units] == ["other-scope-u0"]
    assert await corpus.search([1.0, 0.0, 0.0, 0.0], "missing") == []


async def test_search_limit(corpus):
    assert len(await corpus.search([1.0, 0.0, 0.0, 0.0], "proj", limit=2)) == 2


async def test_similarity_clipped_to_unit_interval():
    corpus = MemoryCorpus(dimensions=2)
    corpus.add_source(SourceRecord("s", "book", "B"), "p")
    corpus.add_units([{"id": "neg", "source_id": "s", "text": "t"}], np.array([[-1.0, 0.0]]))
    units = await corpus.search([1.0, 0.0], "p")
    assert units[0].similarity == 0.0


async def test_query_dimension_mismatch(corpus):
    with pytest.raises(RetrievalError):
        await corpus.search([1.0, 0.0], "proj")


def test_add_units_validation(corpus):
    with pytest.raises(RetrievalError):
        corpus.add_units([{"id": "x", "source_id": "case-1", "text": "t"}], np.ones((1, 3)))
    with pytest.raises(CatalogError):
        corpus.add_units([{"id": "x", "source_id": "nope", "text": "t"}], np.ones((1, 4)))


async def test_catalog_listing(corpus):
    sources = await corpus.list_sources("proj")
    assert [s.id for s in sources] == ["statute-1", "case-1", "article-1"]

    units = await corpus.list_units_by_source("statute-1")
    assert [u.sequence_index for u in units] == [0, 1, 2]
    assert all(u.similarity == 0.0 for u in units)

    with pytest.raises(CatalogError):
        await corpus.list_units_by_source("nope")


async def test_save_and_load(corpus, tmp_dir):
    path = str(Path(tmp_dir) / "nested" / "corpus.json")
    corpus.save(path)
    loaded = MemoryCorpus.load(path, dimensions=4)

    assert loaded.scope_count == corpus.scope_count == 2
    assert loaded.unit_count == corpus.unit_count == 7
    original = await corpus.search([0.5, 0.5, 0.0, 0.0], "proj")
    reloaded = await loaded.search([0.5, 0.5, 0.0, 0.0], "proj")
    assert [u.id for u in reloaded] == [u.id for u in original]


def test_load_missing_file_gives_empty_corpus(tmp_dir):
    corpus = MemoryCorpus.load(str(Path(tmp_dir) / "absent.json"), dimensions=4)
    assert corpus.unit_count == 0
