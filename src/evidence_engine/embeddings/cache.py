"""SQLite-backed cache of query embeddings, keyed by model and text hash."""

from __future__ import annotations

import hashlib
import json

import aiosqlite

CREATE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS query_embedding_cache (
    cache_key TEXT PRIMARY KEY,
    model TEXT NOT NULL,
    embedding TEXT NOT NULL
)
"""


class EmbeddingCache:
    def __init__(self, db_path: str, model: str) -> None:
        self._db_path = db_path
        self._model = model

    async def initialize(self) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(CREATE_CACHE_TABLE)
            await db.commit()

    async def get(self, text: str) -> list[float] | None:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT embedding FROM query_embedding_cache WHERE cache_key = ?",
                (self._key(text),),
            ) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return json.loads(row[0])

    async def put(self, text: str, embedding: list[float]) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO query_embedding_cache (cache_key, model, embedding) "
                "VALUES (?, ?, ?)",
                (self._key(text), self._model, json.dumps(embedding)),
            )
            await db.commit()

    async def count(self) -> int:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute("SELECT COUNT(*) FROM query_embedding_cache") as cursor:
                row = await cursor.fetchone()
                return row[0]

    def _key(self, text: str) -> str:
        # Vectors from different models are not interchangeable.
        return hashlib.sha256(f"{self._model}\x00{text}".encode("utf-8")).hexdigest()
