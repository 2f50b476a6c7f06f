"""Pytest configuration and fixtures for tidb-vector tests."""

import math
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Sequence, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

from tidb_vector.config import VectorStoreConfig
from tidb_vector.models.chunk import VectorRow
from tidb_vector.models.search import SearchHit, TagFilter, TagFilterMode
from tidb_vector.store.statements import candidate_pool_size


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 1.0
    return 1.0 - dot / norm


class FakeRepository:
    """
    In-memory stand-in for VectorRepository.

    Writes are staged per transaction and only become visible on success.
    Search follows the two-stage shape: nearest rows over the whole table
    first, then collection/tag filtering, then the top_k limit.
    """

    def __init__(self, config: VectorStoreConfig):
        self.config = config
        self.rows: Dict[Tuple[str, str], VectorRow] = {}
        self.distances: Dict[str, float] = {}
        self.transactions = 0
        self.write_calls: List[List[VectorRow]] = []
        self.search_calls: List[dict] = []
        self.plan_rows: List[tuple] = []
        self.explain_error: Optional[Exception] = None
        self.connection = MagicMock()
        self.connection.execute = AsyncMock()
        self.connect_calls: List[bool] = []
        self.engine = MagicMock()
        self.engine.dispose = AsyncMock()

    @property
    def table_name(self) -> str:
        return self.config.table_name

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        staged = dict(self.rows)
        yield staged
        self.rows = staged

    @asynccontextmanager
    async def connect(self, autocommit: bool = False):
        self.connect_calls.append(autocommit)
        yield self.connection

    async def upsert_rows(self, conn, rows):
        self.write_calls.append(list(rows))
        for row in rows:
            conn[(row.collection, row.id)] = row

    def _distance(self, row: VectorRow, query_vector: Sequence[float]) -> float:
        if row.id in self.distances:
            return self.distances[row.id]
        return cosine_distance(row.embedding, query_vector)

    async def search(
        self,
        query_vector: Sequence[float],
        collection: str,
        top_k: int,
        tag_filter: Optional[TagFilter] = None,
    ) -> List[SearchHit]:
        self.search_calls.append(
            {"vector": list(query_vector), "collection": collection, "top_k": top_k, "tag_filter": tag_filter}
        )
        ranked = sorted(
            ((self._distance(row, query_vector), row) for row in self.rows.values()),
            key=lambda pair: pair[0],
        )[: candidate_pool_size(top_k)]

        def matches(row: VectorRow) -> bool:
            if row.collection != collection:
                return False
            if tag_filter is None or not tag_filter.tags:
                return True
            tags = row.tags or {}
            checks = [tags.get(tag.key) == tag.value for tag in tag_filter.tags]
            return all(checks) if tag_filter.mode == TagFilterMode.AND else any(checks)

        return [
            SearchHit(
                id=row.id,
                collection=row.collection,
                content=row.content,
                metadata=row.metadata,
                source=row.source,
                tags=row.tags,
                distance=distance,
            )
            for distance, row in ranked
            if matches(row)
        ][:top_k]

    async def explain_search(self, query_vector, collection, top_k):
        if self.explain_error is not None:
            raise self.explain_error
        return self.plan_rows


class FakeEmbeddingGenerator:
    """Deterministic embeddings; records every call."""

    def __init__(self, dimension: int = 3, vector: Optional[List[float]] = None):
        self._dimension = dimension
        self.vector = vector
        self.embed_calls: List[str] = []
        self.batch_calls: List[List[str]] = []
        self.batch_override: Optional[List[List[float]]] = None

    @property
    def dimension(self) -> int:
        return self._dimension

    def vector_for(self, text: str) -> List[float]:
        if self.vector is not None:
            return list(self.vector)
        seed = sum(ord(ch) for ch in text) + len(text)
        return [float((seed % (i + 7)) + 1) for i in range(self._dimension)]

    async def embed(self, text: str) -> List[float]:
        self.embed_calls.append(text)
        return self.vector_for(text)

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        texts = list(texts)
        if not texts:
            return []
        self.batch_calls.append(texts)
        if self.batch_override is not None:
            return self.batch_override
        return [self.vector_for(text) for text in texts]


class FakeTextGenerator:
    """Returns a fixed reply; records the prompts it was given."""

    def __init__(self, reply: str = "42"):
        self.reply = reply
        self.calls: List[Tuple[str, List[Tuple[str, str]]]] = []

    async def complete(self, system: str, messages: Sequence[Tuple[str, str]]) -> str:
        self.calls.append((system, list(messages)))
        return self.reply


@pytest.fixture
def store_config():
    """Minimal store configuration with a three-dimensional vector column."""
    return VectorStoreConfig(
        connection_string="mysql://root@127.0.0.1:4000/test",
        embedding_dimension=3,
    )


@pytest.fixture
def fake_repository(store_config):
    return FakeRepository(store_config)


@pytest.fixture
def fake_embedder():
    return FakeEmbeddingGenerator(dimension=3)


@pytest.fixture
def fake_text_generator():
    return FakeTextGenerator()
