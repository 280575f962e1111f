"""Build the in-memory corpus file from pre-chunked sources.

Input is a JSON file of the form
    {"sources": [{"id", "scope_id", "source_type", "title",
                  "units": [{"id", "page_number", "paragraph_index", "text"}, ...]}]}
Units are embedded with the configured OpenAI model and written to the corpus
path the server loads at startup. Without an input file a small sample scope
is seeded for development.
"""

from __future__ import annotations

import argparse
import asyncio
import json

import numpy as np

from evidence_engine.catalog.memory_corpus import MemoryCorpus
from evidence_engine.config.settings import Settings
from evidence_engine.embeddings.openai_embedder import OpenAIEmbedder
from evidence_engine.models.domain import SourceRecord

SAMPLE_SOURCES = [
    {
        "id": "src-privacy-act",
        "scope_id": "sample",
        "source_type": "statute",
        "title": "Data Protection Act",
        "units": [
            {"page_number": 1, "paragraph_index": 0, "text": "Section 1. Personal data shall be processed lawfully, fairly and in a transparent manner in relation to the data subject."},
            {"page_number": 1, "paragraph_index": 1, "text": "Section 2. Personal data shall be collected for specified, explicit and legitimate purposes and not further processed in a manner incompatible with those purposes."},
            {"page_number": 2, "paragraph_index": 0, "text": "Section 3. Subject to section 2, processing for archiving purposes in the public interest shall not be considered incompatible with the initial purposes."},
        ],
    },
    {
        "id": "src-smith-v-jones",
        "scope_id": "sample",
        "source_type": "case",
        "title": "Smith v. Jones",
        "units": [
            {"page_number": 4, "paragraph_index": 2, "text": "The court held that consent obtained through pre-ticked boxes does not constitute valid consent for the processing of personal data."},
            {"page_number": 5, "paragraph_index": 0, "text": "However, the court declined to extend this reasoning to processing carried out under a legitimate interest assessment, see [2019] EWCA Civ 12."},
        ],
    },
    {
        "id": "src-review-article",
        "scope_id": "sample",
        "source_type": "journal_article",
        "title": "Brown, 2021, Consent and Its Discontents",
        "units": [
            {"page_number": 12, "paragraph_index": 1, "text": "Scholars have long questioned whether consent can bear the normative weight placed on it by data protection law, given information asymmetries."},
            {"page_number": 13, "paragraph_index": 0, "text": "Therefore, a shift toward accountability-based regimes has been proposed, placing the burden on controllers rather than data subjects."},
        ],
    },
]


def load_sources(path: str | None) -> list[dict]:
    if path is None:
        return SAMPLE_SOURCES
    with open(path) as f:
        return json.load(f)["sources"]


async def main(input_path: str | None, output_path: str | None) -> None:
    settings = Settings()
    output_path = output_path or settings.corpus_path

    embedder = OpenAIEmbedder(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        _dimensions=settings.embedding_dimensions,
        retry_attempts=settings.embedding_retry_attempts,
    )
    corpus = MemoryCorpus(settings.embedding_dimensions)

    for source in load_sources(input_path):
        corpus.add_source(
            SourceRecord(source["id"], source.get("source_type", "other"), source.get("title", "")),
            source["scope_id"],
        )
        units = [
            {
                "id": unit.get("id") or f"{source['id']}-{seq}",
                "source_id": source["id"],
                "page_number": unit.get("page_number", 0),
                "paragraph_index": unit.get("paragraph_index", 0),
                "sequence_index": unit.get("sequence_index", seq),
                "text": unit["text"],
            }
            for seq, unit in enumerate(source["units"])
        ]
        vectors = await embedder.embed_texts([u["text"] for u in units])
        corpus.add_units(units, np.array(vectors, dtype=np.float32))
        print(f"Embedded {source['title']}: {len(units)} units")

    corpus.save(output_path)
    print(f"\nScopes: {corpus.scope_count}")
    print(f"Units: {corpus.unit_count}")
    print(f"Written to {output_path}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Embed pre-chunked sources into a corpus file")
    parser.add_argument("--input", help="JSON file of sources with units (default: built-in sample)")
    parser.add_argument("--output", help="Corpus path (default: EVIDENCE_CORPUS_PATH)")
    args = parser.parse_args()
    asyncio.run(main(args.input, args.output))
