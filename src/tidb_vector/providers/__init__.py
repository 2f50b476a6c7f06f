"""Embedding and completion providers."""

from tidb_vector.providers.base import EmbeddingGenerator, TextGenerator
from tidb_vector.providers.completion import LiteLLMTextGenerator
from tidb_vector.providers.config import (
    AzureOpenAIProviderConfig,
    OpenAIProviderConfig,
    ProviderBackend,
    ProviderConfig,
)
from tidb_vector.providers.embedding import OpenAIEmbeddingGenerator

__all__ = [
    "AzureOpenAIProviderConfig",
    "EmbeddingGenerator",
    "LiteLLMTextGenerator",
    "OpenAIEmbeddingGenerator",
    "OpenAIProviderConfig",
    "ProviderBackend",
    "ProviderConfig",
    "TextGenerator",
]
