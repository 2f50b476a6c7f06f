"""Token-budget-aware recursive text splitting.

The splitting strategy follows Microsoft Semantic Kernel's TextChunker (MIT License):

1. Lines pass: any segment over budget is cut at the separator closest to its
   midpoint, trying separator tiers from coarse (line breaks, sentence
   terminators) to fine (spaces, hyphens) and finally a plain midpoint cut.
2. Paragraph pass: segments are packed into paragraphs under a budget that
   reserves room for the overlap and the chunk header, a tiny trailing
   paragraph is merged into its predecessor, and each paragraph receives the
   head of the next one as overlap.

All functions are pure; a token counter can be injected everywhere.
"""

import functools
import re
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from tidb_vector.chunking.token_counters import TokenCounter, default_token_counter
from tidb_vector.models.document import ContentType
from tidb_vector.utils.errors import ValidationError

# None means "no separator": cut at the character midpoint.
Separators = Sequence[Optional[str]]

PLAIN_TEXT_SEPARATORS: Tuple[Optional[str], ...] = (
    "\n",
    ".。．",
    "?!",
    ";",
    ":",
    ",，、",
    ")]}",
    " ",
    "-",
    None,
)

MARKUP_SEPARATORS: Tuple[Optional[str], ...] = (
    ".。．",
    "?!",
    ";",
    ":",
    ",，、",
    ")]}",
    " ",
    "-",
    "\n\r",
    None,
)

_Segment = Tuple[str, int]
_LineSplitter = Callable[[str, int], List[str]]


@functools.lru_cache(maxsize=None)
def _separator_pattern(separators: str) -> "re.Pattern[str]":
    return re.compile("[" + re.escape(separators) + "]")


def _find_cut_point(text: str, separators: Optional[str]) -> int:
    """Index just after the separator closest to the midpoint; -1 when there is none."""
    half = len(text) // 2
    if separators is None:
        return half
    if len(text) <= 2:
        return -1

    cut_point = -1
    # The last character is never a cut candidate
    for match in _separator_pattern(separators).finditer(text, 0, len(text) - 1):
        index = match.start()
        if abs(half - index) < abs(half - cut_point):
            cut_point = index + 1
    return cut_point


def _split_segment(
    text: str,
    token_count: int,
    max_tokens: int,
    separators: Optional[str],
    trim: bool,
    counter: TokenCounter,
) -> Tuple[List[_Segment], bool]:
    """Split one segment recursively; the flag reports a piece still over budget."""
    still_over = False

    if token_count > max_tokens:
        still_over = True
        cut_point = _find_cut_point(text, separators)
        if cut_point > 0:
            first, second = text[:cut_point], text[cut_point:]
            if trim:
                first, second = first.strip(), second.strip()

            first_parts, first_over = _split_segment(
                first, counter(first), max_tokens, separators, trim, counter
            )
            second_parts, second_over = _split_segment(
                second, counter(second), max_tokens, separators, trim, counter
            )
            return first_parts + second_parts, first_over or second_over

    if trim:
        stripped = text.strip()
        if stripped != text:
            text, token_count = stripped, counter(stripped)

    return [(text, token_count)], still_over


def _split_lines(
    text: str,
    max_tokens: int,
    trim: bool,
    separator_tiers: Separators,
    counter: TokenCounter,
) -> List[str]:
    text = text.replace("\r\n", "\n")
    segments: List[_Segment] = [(text, counter(text))]

    for separators in separator_tiers:
        next_segments: List[_Segment] = []
        any_over = False
        for segment, token_count in segments:
            parts, over = _split_segment(segment, token_count, max_tokens, separators, trim, counter)
            next_segments.extend(parts)
            any_over = any_over or over
        segments = next_segments
        if not any_over:
            break

    return [segment for segment, _ in segments]


def _build_paragraphs(lines: Iterable[str], max_tokens: int, counter: TokenCounter) -> List[str]:
    paragraphs: List[str] = []
    buffer = ""

    for line in lines:
        if buffer:
            token_count = counter(line) + 1
            if token_count < max_tokens:
                token_count += counter(buffer)
            if token_count >= max_tokens:
                paragraphs.append(buffer.strip())
                buffer = ""
        buffer += line + "\n"

    if buffer:
        paragraphs.append(buffer.strip())
    return paragraphs


def _merge_tail(paragraphs: List[str], max_tokens: int, counter: TokenCounter) -> None:
    """Fold a small trailing paragraph into the previous one when the result still fits."""
    if len(paragraphs) < 2:
        return

    last, second_last = paragraphs[-1], paragraphs[-2]
    if counter(last) >= max_tokens // 4:
        return

    last_words = [w for w in last.split(" ") if w]
    second_last_words = [w for w in second_last.split(" ") if w]
    merged = f"{' '.join(second_last_words)} {' '.join(last_words)}"
    if counter(merged) <= max_tokens:
        paragraphs[-2] = merged
        paragraphs.pop()


def _process_paragraphs(
    paragraphs: List[str],
    adjusted_max_tokens: int,
    overlap_tokens: int,
    chunk_header: Optional[str],
    splitter: _LineSplitter,
    counter: TokenCounter,
) -> List[str]:
    _merge_tail(paragraphs, adjusted_max_tokens, counter)

    processed: List[str] = []
    for i, paragraph in enumerate(paragraphs):
        chunk = (chunk_header or "") + paragraph
        if overlap_tokens > 0 and i < len(paragraphs) - 1:
            overlap_parts = splitter(paragraphs[i + 1], overlap_tokens)
            if overlap_parts:
                chunk = f"{chunk} {overlap_parts[0]}"
        processed.append(chunk)
    return processed


def validate_chunk_budget(max_tokens: int, overlap_tokens: int) -> None:
    if max_tokens <= 0:
        raise ValidationError(
            "max_tokens must be a positive number", errors={"max_tokens": max_tokens}
        )
    if overlap_tokens < 0:
        raise ValidationError(
            "overlap_tokens must be >= 0", errors={"overlap_tokens": overlap_tokens}
        )
    if overlap_tokens >= max_tokens:
        raise ValidationError(
            "overlap_tokens must be less than max_tokens",
            errors={"overlap_tokens": overlap_tokens, "max_tokens": max_tokens},
        )


def _split_paragraphs(
    lines: Iterable[str],
    max_tokens_per_paragraph: int,
    overlap_tokens: int,
    chunk_header: Optional[str],
    separator_tiers: Separators,
    token_counter: Optional[TokenCounter],
) -> List[str]:
    validate_chunk_budget(max_tokens_per_paragraph, overlap_tokens)

    lines = list(lines)
    if not lines:
        return []

    counter = token_counter or default_token_counter
    header_tokens = counter(chunk_header) if chunk_header else 0
    content_tokens = max_tokens_per_paragraph - overlap_tokens - header_tokens
    if content_tokens <= 0:
        raise ValidationError(
            "chunk header and overlap leave no room for content",
            errors={
                "max_tokens": max_tokens_per_paragraph,
                "overlap_tokens": overlap_tokens,
                "header_tokens": header_tokens,
            },
        )

    # Overlap is joined with a space, which costs up to one token
    separator_tokens = 1 if overlap_tokens > 0 else 0
    adjusted_max_tokens = max(content_tokens - separator_tokens, 1)

    def splitter(text: str, max_tokens: int) -> List[str]:
        return _split_lines(text, max_tokens, False, separator_tiers, counter)

    truncated_lines = [part for line in lines for part in splitter(line, adjusted_max_tokens)]
    paragraphs = _build_paragraphs(truncated_lines, adjusted_max_tokens, counter)
    return _process_paragraphs(
        paragraphs, adjusted_max_tokens, overlap_tokens, chunk_header, splitter, counter
    )


def split_plain_text_lines(
    text: str, max_tokens_per_line: int, token_counter: Optional[TokenCounter] = None
) -> List[str]:
    """Split plain text into trimmed segments of at most ``max_tokens_per_line`` tokens."""
    counter = token_counter or default_token_counter
    return _split_lines(text, max_tokens_per_line, True, PLAIN_TEXT_SEPARATORS, counter)


def split_markdown_lines(
    text: str, max_tokens_per_line: int, token_counter: Optional[TokenCounter] = None
) -> List[str]:
    """Split markdown/markup into trimmed segments of at most ``max_tokens_per_line`` tokens."""
    counter = token_counter or default_token_counter
    return _split_lines(text, max_tokens_per_line, True, MARKUP_SEPARATORS, counter)


def split_plain_text_paragraphs(
    lines: Iterable[str],
    max_tokens_per_paragraph: int,
    overlap_tokens: int = 0,
    chunk_header: Optional[str] = None,
    token_counter: Optional[TokenCounter] = None,
) -> List[str]:
    """
    Pack plain-text lines into paragraphs.

    Args:
        lines: Segments, typically from ``split_plain_text_lines``
        max_tokens_per_paragraph: Token budget per paragraph (header and overlap included)
        overlap_tokens: Tokens of the next paragraph appended to each paragraph
        chunk_header: Text prepended verbatim to every paragraph
        token_counter: Token counter (default: characters / 4, rounded up)

    Returns:
        Paragraphs in input order

    Raises:
        ValidationError: If the budget arguments are invalid
    """
    normalized = (line.replace("\r\n", "\n").replace("\r", "\n") for line in lines)
    return _split_paragraphs(
        normalized,
        max_tokens_per_paragraph,
        overlap_tokens,
        chunk_header,
        PLAIN_TEXT_SEPARATORS,
        token_counter,
    )


def split_markdown_paragraphs(
    lines: Iterable[str],
    max_tokens_per_paragraph: int,
    overlap_tokens: int = 0,
    chunk_header: Optional[str] = None,
    token_counter: Optional[TokenCounter] = None,
) -> List[str]:
    """Markup counterpart of ``split_plain_text_paragraphs``."""
    return _split_paragraphs(
        lines,
        max_tokens_per_paragraph,
        overlap_tokens,
        chunk_header,
        MARKUP_SEPARATORS,
        token_counter,
    )


class TextChunker:
    """
    Stateless splitter producing token-bounded, optionally overlapping chunks.

    Plain text uses the line-break-first separator tiers; markdown and HTML use
    the markup tiers.
    """

    def __init__(self, token_counter: Optional[TokenCounter] = None):
        self.token_counter = token_counter or default_token_counter

    def count_tokens(self, text: str) -> int:
        return self.token_counter(text)

    def split(
        self,
        text: Optional[str],
        max_tokens_per_segment: int,
        overlap_tokens: int = 0,
        chunk_header: Optional[str] = None,
        content_type: ContentType = ContentType.PLAIN_TEXT,
    ) -> List[str]:
        """
        Split text into chunks.

        Args:
            text: Input text
            max_tokens_per_segment: Token budget per chunk
            overlap_tokens: Overlap between consecutive chunks, in tokens
            chunk_header: Text prepended verbatim to every chunk
            content_type: Selects the separator tiers

        Returns:
            Chunks in document order (empty for empty input)

        Raises:
            ValidationError: If max_tokens_per_segment <= 0 or overlap_tokens >= max_tokens_per_segment
        """
        validate_chunk_budget(max_tokens_per_segment, overlap_tokens)

        if not text or not text.strip():
            return []

        if content_type == ContentType.PLAIN_TEXT:
            lines = split_plain_text_lines(text, max_tokens_per_segment, self.token_counter)
            return split_plain_text_paragraphs(
                lines, max_tokens_per_segment, overlap_tokens, chunk_header, self.token_counter
            )

        lines = split_markdown_lines(text, max_tokens_per_segment, self.token_counter)
        return split_markdown_paragraphs(
            lines, max_tokens_per_segment, overlap_tokens, chunk_header, self.token_counter
        )
