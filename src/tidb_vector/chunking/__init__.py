"""Text chunking: token counting, HTML stripping and recursive splitting."""

from tidb_vector.chunking.html import strip_html
from tidb_vector.chunking.text_chunker import (
    MARKUP_SEPARATORS,
    PLAIN_TEXT_SEPARATORS,
    TextChunker,
    split_markdown_lines,
    split_markdown_paragraphs,
    split_plain_text_lines,
    split_plain_text_paragraphs,
    validate_chunk_budget,
)
from tidb_vector.chunking.token_counters import (
    TokenCounter,
    default_token_counter,
    tiktoken_token_counter,
)

__all__ = [
    "MARKUP_SEPARATORS",
    "PLAIN_TEXT_SEPARATORS",
    "TextChunker",
    "TokenCounter",
    "default_token_counter",
    "split_markdown_lines",
    "split_markdown_paragraphs",
    "split_plain_text_lines",
    "split_plain_text_paragraphs",
    "strip_html",
    "tiktoken_token_counter",
    "validate_chunk_budget",
]
