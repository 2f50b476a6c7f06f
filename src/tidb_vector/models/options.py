"""Per-call options for writes and searches."""

from typing import Optional

from pydantic import BaseModel, Field

from tidb_vector.models.search import TagFilter


class UpsertOptions(BaseModel):
    """Options for Upsert / UpsertBatch."""

    use_chunking: bool = Field(default=False, description="Split long content into chunk rows")
    max_tokens_per_chunk: int = Field(default=600, description="Chunk budget in tokens")
    overlap_tokens: int = Field(default=80, description="Tokens of the next chunk appended to each chunk")
    chunk_header: Optional[str] = Field(default=None, description="Text prepended to every chunk")
    strip_html: bool = Field(default=False, description="Strip markup from HTML content before chunking")


class SearchOptions(BaseModel):
    """Options for Search / Ask."""

    collection: Optional[str] = Field(
        default=None, description="Collection to search; the store default when unset"
    )
    tag_filter: Optional[TagFilter] = Field(default=None, description="Tag equality conditions")
