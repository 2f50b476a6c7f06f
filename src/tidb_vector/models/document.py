"""Write-side document models."""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator


class ContentType(str, Enum):
    """Content type of a document; selects the chunker's separator tiers."""

    PLAIN_TEXT = "PlainText"
    MARKDOWN = "Markdown"
    HTML = "Html"


class Tag(BaseModel):
    """A key-value pair used for exact-match filtering (distinct from metadata)."""

    key: str = Field(..., min_length=1, description="Tag key")
    value: str = Field(..., description="Tag value")


def tags_to_dict(tags: Optional[List[Tag]]) -> Optional[Dict[str, str]]:
    """Collapse tags into the stored key->value object (last value wins; empty -> None)."""
    if not tags:
        return None
    return {tag.key: tag.value for tag in tags}


class UpsertItem(BaseModel):
    """
    A document to write.

    Example:
        UpsertItem(
            id="doc-1",
            collection="engineering-docs",
            content="How to implement microservices...",
            source="https://docs.company.com/microservices-guide.pdf",
            metadata={"Category": "Architecture"},
            tags={"OrganizationId": "org-123", "Department": "Engineering"},
        )
    """

    id: str = Field(..., min_length=1, description="Caller-assigned id, unique within the collection")
    collection: str = Field(default="", description="Collection; the store default when empty")
    content: Optional[str] = Field(default=None, description="Text content")
    metadata: Optional[Any] = Field(
        default=None, description="Opaque JSON-compatible value tree, passed through unmodified"
    )
    source: Optional[str] = Field(default=None, description="Optional source locator (URL, path)")
    tags: Optional[List[Tag]] = Field(default=None, description="Key-value tags for filtering")
    embedding: Optional[List[float]] = Field(default=None, description="Precomputed embedding")
    content_type: ContentType = Field(default=ContentType.PLAIN_TEXT, description="Content type")

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, v: Any) -> Any:
        """Accept a mapping or (key, value) pairs as well as Tag objects."""
        if v is None:
            return None
        if isinstance(v, Mapping):
            return [Tag(key=k, value=val) for k, val in v.items()]
        coerced = []
        for entry in v:
            if isinstance(entry, (tuple, list)) and len(entry) == 2:
                coerced.append(Tag(key=entry[0], value=entry[1]))
            else:
                coerced.append(entry)
        return coerced

    @field_validator("embedding", mode="before")
    @classmethod
    def empty_embedding_is_absent(cls, v: Any) -> Any:
        """An empty precomputed embedding means "not supplied"."""
        if v is not None and len(v) == 0:
            return None
        return v

    @property
    def tags_dict(self) -> Optional[Dict[str, str]]:
        return tags_to_dict(self.tags)
