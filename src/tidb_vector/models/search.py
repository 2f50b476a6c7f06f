"""Read-side result models and tag filters."""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator

from tidb_vector.models.document import Tag


class TagFilterMode(str, Enum):
    """How multiple tag conditions combine."""

    AND = "and"
    OR = "or"


class TagFilter(BaseModel):
    """Equality conditions against the dedicated tags column."""

    tags: List[Tag] = Field(default_factory=list)
    mode: TagFilterMode = TagFilterMode.AND

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return [Tag(key=k, value=val) for k, val in v.items()]
        return v

    @classmethod
    def from_dict(
        cls, tags: Mapping[str, str], mode: Union[TagFilterMode, str] = TagFilterMode.AND
    ) -> "TagFilter":
        return cls(tags=[Tag(key=k, value=v) for k, v in tags.items()], mode=TagFilterMode(mode))

    def to_dict(self) -> Dict[str, str]:
        return {tag.key: tag.value for tag in self.tags}


class SearchHit(BaseModel):
    """A ranked search result."""

    id: str
    collection: str
    content: Optional[str] = None
    metadata: Optional[Any] = None
    source: Optional[str] = None
    tags: Optional[Dict[str, str]] = None
    distance: float


class Citation(BaseModel):
    """A source cited by an answer."""

    id: str
    snippet: Optional[str] = None
    distance: float
    source: Optional[str] = None


class Answer(BaseModel):
    """A generated answer with citations in retrieval order."""

    text: str = ""
    sources: List[Citation] = Field(default_factory=list)
