"""Turns a document into chunk records ready for embedding."""

from typing import Any, Dict, List, Mapping

from tidb_vector.chunking.html import strip_html
from tidb_vector.chunking.text_chunker import TextChunker
from tidb_vector.models.chunk import ChunkRecord
from tidb_vector.models.document import ContentType, UpsertItem
from tidb_vector.models.options import UpsertOptions
from tidb_vector.utils.logging import get_logger

logger = get_logger("chunk_planner")


def chunk_id(parent_id: str, chunk_index: int) -> str:
    # Not collision-proof when parent_id itself contains "/c<n>"
    return f"{parent_id}/c{chunk_index}"


def enrich_metadata(
    metadata: Any, parent_id: str, chunk_index: int, content_type: ContentType
) -> Dict[str, Any]:
    """Parent metadata plus ``parentId``, ``chunkIndex`` and ``contentType``."""
    if metadata is None:
        enriched: Dict[str, Any] = {}
    elif isinstance(metadata, Mapping):
        enriched = dict(metadata)
    else:
        enriched = {"value": metadata}

    enriched["parentId"] = parent_id
    enriched["chunkIndex"] = chunk_index
    enriched["contentType"] = content_type.value
    return enriched


class ChunkPlanner:
    """Splits an item's content and derives per-chunk ids and metadata."""

    def __init__(self, chunker: TextChunker):
        self.chunker = chunker

    def plan(self, item: UpsertItem, options: UpsertOptions) -> List[ChunkRecord]:
        """
        Build the chunk records for one item.

        Args:
            item: Document to split (its content is expected to be non-empty)
            options: Chunk budget, overlap, header and HTML handling

        Returns:
            Chunk records in document order; empty when nothing survives splitting

        Raises:
            ValidationError: If the chunk budget arguments are invalid
        """
        content = item.content or ""
        split_as = item.content_type

        if options.strip_html and item.content_type == ContentType.HTML:
            content = strip_html(content)
            split_as = ContentType.PLAIN_TEXT

        pieces = self.chunker.split(
            content,
            options.max_tokens_per_chunk,
            overlap_tokens=options.overlap_tokens,
            chunk_header=options.chunk_header,
            content_type=split_as,
        )

        if not pieces:
            logger.warning(f"Item {item.id} produced no chunks; nothing will be written for it")

        return [
            ChunkRecord(
                chunk_id=chunk_id(item.id, index),
                parent_id=item.id,
                chunk_index=index,
                content=piece,
                metadata=enrich_metadata(item.metadata, item.id, index, item.content_type),
            )
            for index, piece in enumerate(pieces)
        ]
