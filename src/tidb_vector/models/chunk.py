"""Chunk and persisted-row models."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ChunkRecord(BaseModel):
    """A chunk of a parent document, produced at write time only."""

    chunk_id: str = Field(..., description="'{parent_id}/c{chunk_index}'")
    parent_id: str = Field(..., description="Id of the document this chunk was cut from")
    chunk_index: int = Field(..., ge=0, description="0-based ordinal within the parent")
    content: str = Field(..., description="Chunk text (including any chunk header)")
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Parent metadata plus parentId/chunkIndex/contentType"
    )


class VectorRow(BaseModel):
    """One row of the vector table, keyed by (collection, id)."""

    collection: str
    id: str
    content: Optional[str] = None
    metadata: Optional[Any] = None
    source: Optional[str] = None
    tags: Optional[Dict[str, str]] = None
    embedding: List[float]
