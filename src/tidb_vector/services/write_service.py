"""Embedding resolution and transactional insert-or-replace writes."""

from typing import Iterable, List, Optional, Sequence

from tidb_vector.chunking.text_chunker import validate_chunk_budget
from tidb_vector.models.chunk import VectorRow
from tidb_vector.models.document import UpsertItem
from tidb_vector.models.options import UpsertOptions
from tidb_vector.providers.base import EmbeddingGenerator
from tidb_vector.services.chunk_planner import ChunkPlanner
from tidb_vector.store.repository import VectorRepository
from tidb_vector.utils.errors import ValidationError
from tidb_vector.utils.logging import get_logger

logger = get_logger("write_service")


def validate_dimension(vector: Sequence[float], dimension: int, item_id: str) -> None:
    """Embeddings are never truncated or padded; a length mismatch is fatal."""
    if len(vector) != dimension:
        raise ValidationError(
            f"Embedding dimension {len(vector)} does not match configured {dimension}",
            errors={"id": item_id, "expected": dimension, "actual": len(vector)},
        )


class WriteService:
    """
    Resolves embeddings for documents and writes their rows.

    Per item, in order:
    1. chunking requested, no precomputed embedding, non-empty content:
       split, batch-embed the chunks, one row per chunk
    2. precomputed embedding: one row
    3. otherwise: embed the content (or "") and write one row
    """

    def __init__(
        self,
        repository: VectorRepository,
        planner: ChunkPlanner,
        dimension: int,
        default_collection: str,
        embedding_generator: Optional[EmbeddingGenerator] = None,
    ):
        self.repository = repository
        self.planner = planner
        self.dimension = dimension
        self.default_collection = default_collection
        self.embedding_generator = embedding_generator

    async def upsert(self, item: UpsertItem, options: Optional[UpsertOptions] = None) -> None:
        await self.upsert_batch([item], options)

    async def upsert_batch(
        self, items: Iterable[UpsertItem], options: Optional[UpsertOptions] = None
    ) -> None:
        """
        Write all rows for all items in one transaction.

        Items are processed strictly in order. Any validation, provider or
        storage failure rolls the whole batch back.

        Raises:
            ValidationError: Dimension mismatch, invalid chunk budget or missing embedding provider
            ProviderError: Embedding call failed
            StorageError: Connection or statement failure
        """
        items = list(items)
        if not items:
            return

        options = options or UpsertOptions()
        if options.use_chunking:
            validate_chunk_budget(options.max_tokens_per_chunk, options.overlap_tokens)

        row_count = 0
        async with self.repository.transaction() as conn:
            for item in items:
                rows = await self._resolve_rows(item, options)
                await self.repository.upsert_rows(conn, rows)
                row_count += len(rows)

        logger.info(
            "Upserted items",
            extra={"items": len(items), "rows": row_count, "chunking": options.use_chunking},
        )

    def _collection_for(self, item: UpsertItem) -> str:
        return item.collection.strip() or self.default_collection

    def _require_embedder(self, purpose: str) -> EmbeddingGenerator:
        if self.embedding_generator is None:
            raise ValidationError(
                f"{purpose} requires an embedding generator to be configured",
                errors={"embedding_generator": None},
            )
        return self.embedding_generator

    async def _resolve_rows(self, item: UpsertItem, options: UpsertOptions) -> List[VectorRow]:
        collection = self._collection_for(item)
        tags = item.tags_dict

        if options.use_chunking and item.embedding is None and item.content:
            return await self._chunk_rows(item, options, collection)

        if item.embedding is not None:
            embedding = list(item.embedding)
        else:
            generator = self._require_embedder("Upsert without a precomputed embedding")
            embedding = await generator.embed(item.content or "")

        validate_dimension(embedding, self.dimension, item.id)
        return [
            VectorRow(
                collection=collection,
                id=item.id,
                content=item.content,
                metadata=item.metadata,
                source=item.source,
                tags=tags,
                embedding=embedding,
            )
        ]

    async def _chunk_rows(
        self, item: UpsertItem, options: UpsertOptions, collection: str
    ) -> List[VectorRow]:
        generator = self._require_embedder("Chunking")
        chunks = self.planner.plan(item, options)
        embeddings = await generator.embed_batch([chunk.content for chunk in chunks])

        if len(embeddings) != len(chunks):
            raise ValidationError(
                "Embedding count did not match chunk count",
                errors={"id": item.id, "chunks": len(chunks), "embeddings": len(embeddings)},
            )

        rows = []
        for chunk, embedding in zip(chunks, embeddings):
            validate_dimension(embedding, self.dimension, chunk.chunk_id)
            rows.append(
                VectorRow(
                    collection=collection,
                    id=chunk.chunk_id,
                    content=chunk.content,
                    metadata=chunk.metadata,
                    source=item.source,
                    tags=item.tags_dict,
                    embedding=list(embedding),
                )
            )

        logger.debug(f"Item {item.id} split into {len(rows)} chunk rows")
        return rows
