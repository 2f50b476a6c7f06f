"""TiDBVectorStore: the public entry point wiring the engine services together."""

from typing import Iterable, List, Optional

from tidb_vector.chunking.text_chunker import TextChunker
from tidb_vector.chunking.token_counters import TokenCounter, tiktoken_token_counter
from tidb_vector.config import DEFAULT_EMBEDDING_DIMENSION, Settings, VectorStoreConfig, get_settings
from tidb_vector.models.document import UpsertItem
from tidb_vector.models.options import SearchOptions, UpsertOptions
from tidb_vector.models.search import Answer, SearchHit
from tidb_vector.providers.base import EmbeddingGenerator, TextGenerator
from tidb_vector.providers.completion import LiteLLMTextGenerator
from tidb_vector.providers.embedding import OpenAIEmbeddingGenerator
from tidb_vector.services.answer_service import DEFAULT_ASK_TOP_K, AnswerService
from tidb_vector.services.chunk_planner import ChunkPlanner
from tidb_vector.services.schema_service import SchemaManager
from tidb_vector.services.search_service import DEFAULT_TOP_K, SearchService
from tidb_vector.services.write_service import WriteService
from tidb_vector.store.connection import create_engine
from tidb_vector.store.repository import VectorRepository
from tidb_vector.utils.errors import ConfigurationError
from tidb_vector.utils.logging import get_logger, operation_context

logger = get_logger("vector_store")


def resolve_dimension(
    config: VectorStoreConfig, embedding_generator: Optional[EmbeddingGenerator]
) -> int:
    """
    Effective vector dimension.

    The attached embedding generator wins; otherwise the configured value;
    otherwise the default. Two explicit values that disagree are an error.
    """
    if embedding_generator is not None:
        dimension = int(embedding_generator.dimension)
        if config.embedding_dimension is not None and config.embedding_dimension != dimension:
            raise ConfigurationError(
                f"Configured embedding dimension {config.embedding_dimension} does not match "
                f"the embedding generator's dimension {dimension}",
                setting="embedding_dimension",
            )
        return dimension
    return config.embedding_dimension or DEFAULT_EMBEDDING_DIMENSION


class TiDBVectorStore:
    """
    Vector store over a single TiDB table.

    Usage:
        config = VectorStoreConfig(connection_string="mysql://root@127.0.0.1:4000/test")
        async with TiDBVectorStore(config, embedding_generator=embedder) as store:
            await store.ensure_schema(create_index=True)
            await store.upsert(UpsertItem(id="doc-1", content="..."))
            hits = await store.search("question", top_k=5)

    The configuration is fixed at construction and never changes afterward.
    """

    def __init__(
        self,
        config: VectorStoreConfig,
        embedding_generator: Optional[EmbeddingGenerator] = None,
        text_generator: Optional[TextGenerator] = None,
        token_counter: Optional[TokenCounter] = None,
        default_upsert_options: Optional[UpsertOptions] = None,
        repository: Optional[VectorRepository] = None,
    ):
        self.config = config
        self.dimension = resolve_dimension(config, embedding_generator)
        self.default_upsert_options = default_upsert_options or UpsertOptions()

        if repository is None:
            repository = VectorRepository(create_engine(config), config)
        self.repository = repository

        self.schema_manager = SchemaManager(repository, self.dimension)
        self.writer = WriteService(
            repository,
            ChunkPlanner(TextChunker(token_counter)),
            self.dimension,
            config.default_collection,
            embedding_generator,
        )
        self.searcher = SearchService(
            repository, self.dimension, config.default_collection, embedding_generator
        )
        self.answerer = AnswerService(self.searcher, text_generator)

        logger.info(
            "Vector store initialized",
            extra={
                "table": config.table_name,
                "collection": config.default_collection,
                "dimension": self.dimension,
                "distance": config.distance_function.value,
            },
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TiDBVectorStore":
        """
        Build a store from environment settings.

        Providers are attached only when their credentials are configured.

        Raises:
            ConfigurationError: If the connection string or a provider setting is invalid
        """
        settings = settings or get_settings()
        config = settings.to_store_config()

        embedding_generator = None
        if settings.embedding.is_configured:
            embedding_generator = OpenAIEmbeddingGenerator(settings.to_embedding_provider_config())

        text_generator = None
        if settings.is_chat_configured:
            text_generator = LiteLLMTextGenerator(
                settings.to_completion_provider_config(),
                temperature=settings.chat.chat_temperature,
            )

        token_counter = None
        if settings.chunking.tokenizer_encoding:
            token_counter = tiktoken_token_counter(settings.chunking.tokenizer_encoding)

        return cls(
            config,
            embedding_generator=embedding_generator,
            text_generator=text_generator,
            token_counter=token_counter,
            default_upsert_options=UpsertOptions(
                max_tokens_per_chunk=settings.chunking.max_tokens_per_chunk,
                overlap_tokens=settings.chunking.overlap_tokens,
            ),
        )

    async def __aenter__(self) -> "TiDBVectorStore":
        if self.config.ensure_schema:
            await self.ensure_schema()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def ensure_schema(self, create_index: Optional[bool] = None) -> None:
        """Create the table, and the vector index when requested (config default otherwise)."""
        if create_index is None:
            create_index = self.config.create_vector_index
        await self.schema_manager.ensure_schema(create_index)

    async def upsert(self, item: UpsertItem, options: Optional[UpsertOptions] = None) -> None:
        with operation_context():
            await self.writer.upsert(item, options or self.default_upsert_options)

    async def upsert_batch(
        self, items: Iterable[UpsertItem], options: Optional[UpsertOptions] = None
    ) -> None:
        with operation_context():
            await self.writer.upsert_batch(items, options or self.default_upsert_options)

    async def search(
        self, query: str, top_k: int = DEFAULT_TOP_K, options: Optional[SearchOptions] = None
    ) -> List[SearchHit]:
        with operation_context():
            return await self.searcher.search(query, top_k, options)

    async def ask(
        self, query: str, top_k: int = DEFAULT_ASK_TOP_K, options: Optional[SearchOptions] = None
    ) -> Answer:
        with operation_context():
            return await self.answerer.ask(query, top_k, options)

    async def is_vector_index_used(self, test_query: str, top_k: int = DEFAULT_TOP_K) -> bool:
        return await self.searcher.is_vector_index_used(test_query, top_k)

    async def compact(self) -> None:
        await self.schema_manager.compact()

    async def close(self) -> None:
        """Dispose of the engine."""
        await self.repository.engine.dispose()
        logger.info("Vector store closed")
