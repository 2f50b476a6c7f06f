"""Vector storage and retrieval-augmented generation on TiDB."""

from tidb_vector.config import DistanceFunction, Settings, VectorStoreConfig, get_settings
from tidb_vector.models import (
    Answer,
    Citation,
    ContentType,
    SearchHit,
    SearchOptions,
    Tag,
    TagFilter,
    TagFilterMode,
    UpsertItem,
    UpsertOptions,
)
from tidb_vector.utils.errors import (
    CompletionError,
    ConfigurationError,
    EmbeddingError,
    ProviderError,
    StorageError,
    ValidationError,
    VectorStoreException,
)
from tidb_vector.utils.logging import configure_logging, setup_logging
from tidb_vector.vector_store import TiDBVectorStore

__version__ = "0.1.0"

__all__ = [
    "Answer",
    "Citation",
    "CompletionError",
    "ConfigurationError",
    "ContentType",
    "DistanceFunction",
    "EmbeddingError",
    "ProviderError",
    "SearchHit",
    "SearchOptions",
    "Settings",
    "StorageError",
    "Tag",
    "TagFilter",
    "TagFilterMode",
    "TiDBVectorStore",
    "UpsertItem",
    "UpsertOptions",
    "ValidationError",
    "VectorStoreConfig",
    "VectorStoreException",
    "configure_logging",
    "get_settings",
    "setup_logging",
]
