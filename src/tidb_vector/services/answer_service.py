"""Retrieval-augmented answers with citations."""

from typing import List, Optional

from tidb_vector.models.options import SearchOptions
from tidb_vector.models.search import Answer, Citation, SearchHit
from tidb_vector.providers.base import TextGenerator
from tidb_vector.services.search_service import SearchService
from tidb_vector.utils.errors import ValidationError
from tidb_vector.utils.logging import get_logger

logger = get_logger("answer_service")

DEFAULT_ASK_TOP_K = 6
MAX_SNIPPET_CHARS = 1500

SYSTEM_PROMPT = (
    "You are a helpful assistant. Use the provided context to answer the user's question. "
    "If the answer isn't in the context, say you don't know. Keep answers concise."
)


def truncate(content: str, limit: int = MAX_SNIPPET_CHARS) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + "..."


def build_context(hits: List[SearchHit]) -> str:
    """One labeled block per hit, in retrieval order, separated by blank lines."""
    parts = []
    for hit in hits:
        block = f"[SourceId: {hit.id}] (distance={hit.distance:.4f})\n"
        if hit.content:
            block += truncate(hit.content) + "\n"
        parts.append(block + "\n")
    return "".join(parts)


def build_user_prompt(context: str, query: str) -> str:
    return f"CONTEXT:\n{context}\nQUESTION: {query}"


class AnswerService:
    """Search, then ask the completion provider to answer from the hits."""

    def __init__(self, search_service: SearchService, text_generator: Optional[TextGenerator] = None):
        self.search_service = search_service
        self.text_generator = text_generator

    async def ask(
        self,
        query: str,
        top_k: int = DEFAULT_ASK_TOP_K,
        options: Optional[SearchOptions] = None,
    ) -> Answer:
        """
        Answer a question from stored content.

        Args:
            query: Question (empty/whitespace returns an empty Answer)
            top_k: Number of hits fed to the model as context
            options: Same filters as search

        Returns:
            Answer text plus citations mirroring the hit order

        Raises:
            ValidationError: If no text generator is configured
            ProviderError: Embedding or completion call failed
        """
        if not query or not query.strip():
            return Answer()
        if self.text_generator is None:
            raise ValidationError(
                "Ask requires a text generator to be configured",
                errors={"text_generator": None},
            )

        hits = await self.search_service.search(query, top_k, options)
        context = build_context(hits)
        text = await self.text_generator.complete(
            SYSTEM_PROMPT, [("user", build_user_prompt(context, query))]
        )

        logger.info("Answer generated", extra={"hits": len(hits)})
        return Answer(
            text=text,
            sources=[
                Citation(id=hit.id, snippet=hit.content, distance=hit.distance, source=hit.source)
                for hit in hits
            ],
        )
