"""Data models for documents, chunks, rows and search results."""

from tidb_vector.models.chunk import ChunkRecord, VectorRow
from tidb_vector.models.document import ContentType, Tag, UpsertItem
from tidb_vector.models.options import SearchOptions, UpsertOptions
from tidb_vector.models.search import Answer, Citation, SearchHit, TagFilter, TagFilterMode

__all__ = [
    "Answer",
    "ChunkRecord",
    "Citation",
    "ContentType",
    "SearchHit",
    "SearchOptions",
    "Tag",
    "TagFilter",
    "TagFilterMode",
    "UpsertItem",
    "UpsertOptions",
    "VectorRow",
]
