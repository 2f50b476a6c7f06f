"""Embedding generation via the OpenAI SDK (OpenAI direct or Azure OpenAI)."""

from __future__ import annotations

from typing import List, Sequence

from openai import AsyncAzureOpenAI, AsyncOpenAI

from tidb_vector.providers.config import ProviderBackend, ProviderConfig
from tidb_vector.utils.errors import EmbeddingError
from tidb_vector.utils.logging import get_logger

logger = get_logger("providers.embedding")


class OpenAIEmbeddingGenerator:
    """
    Generate embeddings using a configurable backend.

    Backends:
    - openai: OpenAI direct API
    - azure: Azure OpenAI (requires a deployment)

    Calls are made exactly once; failures surface as EmbeddingError.
    """

    def __init__(self, config: ProviderConfig) -> None:
        config.validate_for("embedding")
        self._config = config
        self._model_name = config.model_name
        self._dimension = int(config.dimension)
        self._client = self._create_client()

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    def _create_client(self):
        """Create the appropriate OpenAI client for the selected backend."""
        cfg = self._config
        if cfg.backend == ProviderBackend.AZURE:
            return AsyncAzureOpenAI(
                api_key=cfg.api_key,
                azure_endpoint=cfg.endpoint,
                api_version=cfg.api_version,
                timeout=cfg.timeout,
            )
        return AsyncOpenAI(
            api_key=cfg.api_key,
            base_url=cfg.base_url,
            timeout=cfg.timeout,
        )

    async def _create_embeddings(self, inputs: List[str]) -> List[List[float]]:
        try:
            resp = await self._client.embeddings.create(
                model=self._model_name,
                input=inputs,
                dimensions=self._dimension,
            )
        except Exception as e:
            raise EmbeddingError(f"Embedding request failed: {e}", model=self._model_name) from e
        # Responses carry an index per input; keep the input order
        data = sorted(resp.data, key=lambda d: d.index)
        return [list(d.embedding) for d in data]

    async def embed(self, text: str) -> List[float]:
        """
        Embed a single text.

        Args:
            text: Input text (may be empty)

        Returns:
            Embedding vector
        """
        vectors = await self._create_embeddings([text])
        if len(vectors) != 1:
            raise EmbeddingError(
                "Embedding response size mismatch",
                model=self._model_name,
                details={"expected": 1, "got": len(vectors)},
            )
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed many texts in a single request.

        Args:
            texts: Input texts

        Returns:
            Vectors aligned with the input order (empty input -> empty list, no request)
        """
        inputs = list(texts)
        if not inputs:
            return []

        logger.debug(
            f"Generating embeddings: provider={self._config.backend.value}, "
            f"model={self._model_name}, inputs={len(inputs)}"
        )
        return await self._create_embeddings(inputs)
