"""Query embedding and two-stage (ANN, then exact filter) retrieval."""

from typing import List, Optional

from tidb_vector.models.options import SearchOptions
from tidb_vector.models.search import SearchHit
from tidb_vector.providers.base import EmbeddingGenerator
from tidb_vector.services.write_service import validate_dimension
from tidb_vector.store.repository import VectorRepository
from tidb_vector.store.statements import ANN_INDEX_MARKER
from tidb_vector.utils.errors import StorageError, ValidationError
from tidb_vector.utils.logging import get_logger

logger = get_logger("search_service")

DEFAULT_TOP_K = 5


class SearchService:
    """Embeds a query and ranks stored rows by vector distance."""

    def __init__(
        self,
        repository: VectorRepository,
        dimension: int,
        default_collection: str,
        embedding_generator: Optional[EmbeddingGenerator] = None,
    ):
        self.repository = repository
        self.dimension = dimension
        self.default_collection = default_collection
        self.embedding_generator = embedding_generator

    def _collection_for(self, options: Optional[SearchOptions]) -> str:
        if options and options.collection and options.collection.strip():
            return options.collection.strip()
        return self.default_collection

    async def search(
        self,
        query: str,
        top_k: int = DEFAULT_TOP_K,
        options: Optional[SearchOptions] = None,
    ) -> List[SearchHit]:
        """
        Search for the rows nearest to a query.

        The candidate pool is the table's ``max(3*top_k, top_k+20)`` nearest
        rows regardless of collection or tags; filters then apply to that
        pool. Sparse filters can therefore return fewer than ``top_k`` hits.

        Args:
            query: Query text (empty/whitespace returns no hits)
            top_k: Maximum number of hits
            options: Collection override and tag filter

        Returns:
            Hits in ascending distance order

        Raises:
            ValidationError: If top_k <= 0, no embedding generator is configured,
                or the query embedding has the wrong dimension
            ProviderError: Embedding call failed
            StorageError: Query failed
        """
        if not query or not query.strip():
            return []
        if top_k <= 0:
            raise ValidationError("top_k must be a positive number", errors={"top_k": top_k})
        if self.embedding_generator is None:
            raise ValidationError(
                "Search requires an embedding generator to embed the query",
                errors={"embedding_generator": None},
            )

        query_vector = await self.embedding_generator.embed(query)
        validate_dimension(query_vector, self.dimension, "query")

        collection = self._collection_for(options)
        tag_filter = options.tag_filter if options else None
        hits = await self.repository.search(query_vector, collection, top_k, tag_filter)

        logger.info(
            "Search completed",
            extra={"collection": collection, "top_k": top_k, "hits": len(hits)},
        )
        return hits

    async def is_vector_index_used(self, test_query: str, top_k: int = DEFAULT_TOP_K) -> bool:
        """
        Report whether the plan of the two-stage query uses the ANN index.

        Best-effort diagnostic: inconclusive plans and store failures give False.
        """
        if not test_query or not test_query.strip():
            return False

        if self.embedding_generator is None:
            query_vector = [0.0] * self.dimension
        else:
            query_vector = list(await self.embedding_generator.embed(test_query))
            # Shape only matters for the plan
            query_vector = (query_vector + [0.0] * self.dimension)[: self.dimension]

        try:
            plan_rows = await self.repository.explain_search(
                query_vector, self.default_collection, max(top_k, 1)
            )
        except StorageError as e:
            logger.warning(f"Could not inspect the search plan: {e}")
            return False

        marker = ANN_INDEX_MARKER.lower()
        for row in plan_rows:
            for value in row:
                if value is not None and marker in str(value).lower():
                    return True
        return False
