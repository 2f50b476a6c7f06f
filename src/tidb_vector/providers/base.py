"""Capability contracts consumed by the engine."""

from typing import List, Protocol, Sequence, Tuple, runtime_checkable


@runtime_checkable
class EmbeddingGenerator(Protocol):
    """Produces fixed-dimension float vectors for text."""

    @property
    def dimension(self) -> int:
        ...

    async def embed(self, text: str) -> List[float]:
        ...

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed many texts in one call; empty input returns an empty list without a call."""
        ...


@runtime_checkable
class TextGenerator(Protocol):
    """Produces a completion for a system instruction plus ordered (role, content) turns."""

    async def complete(self, system: str, messages: Sequence[Tuple[str, str]]) -> str:
        ...
