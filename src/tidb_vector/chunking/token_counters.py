"""Token counters for the text chunker."""

import math
from typing import Callable

import tiktoken

TokenCounter = Callable[[str], int]


def default_token_counter(text: str) -> int:
    """Approximate token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


def tiktoken_token_counter(encoding_name: str = "cl100k_base") -> TokenCounter:
    """
    Build a token counter backed by a tiktoken encoding.

    Args:
        encoding_name: tiktoken encoding name (e.g. cl100k_base, o200k_base)

    Returns:
        A callable returning the exact token count of a text
    """
    encoding = tiktoken.get_encoding(encoding_name)

    def count(text: str) -> int:
        # Content may legitimately contain special-token strings
        return len(encoding.encode(text, disallowed_special=()))

    return count
