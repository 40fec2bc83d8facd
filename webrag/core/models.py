from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

MAIN_SECTION = "main"
# Facet sections in the order they are written
FACET_SECTIONS = ("topics", "keypoints", "sentiment", "entities")


class PageMetadata(BaseModel):
    """Derived facets for a page. None or empty means the facet is absent."""

    model_config = ConfigDict(populate_by_name=True)

    topics: Optional[List[str]] = None
    key_points: Optional[List[str]] = Field(default=None, alias="keyPoints")
    sentiment: Optional[str] = None
    entities: Optional[List[str]] = None

    def facet_texts(self) -> Dict[str, str]:
        """Return the present facets as section -> text, skipping absent ones."""
        raw = {
            "topics": self.topics,
            "keypoints": self.key_points,
            "sentiment": self.sentiment,
            "entities": self.entities,
        }
        texts: Dict[str, str] = {}
        for section in FACET_SECTIONS:
            value = raw[section]
            if value is None:
                continue
            if isinstance(value, list):
                text = ", ".join(item.strip() for item in value if item and item.strip())
            else:
                text = value.strip()
            if text:
                texts[section] = text
        return texts


class PageContent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    description: str = ""
    main_text: str = Field(default="", alias="mainText")
    metadata: PageMetadata = Field(default_factory=PageMetadata)


def record_id(source_id: str, section: str, ordinal: Optional[int] = None) -> str:
    if section == MAIN_SECTION:
        return f"{source_id}-{section}-{ordinal}"
    return f"{source_id}-{section}"


@dataclass
class Chunk:
    source_id: str
    section: str
    text: str
    ordinal: int = 0
    vector: List[float] = field(default_factory=list)

    @property
    def id(self) -> str:
        return record_id(self.source_id, self.section, self.ordinal)


@dataclass
class IndexRecord:
    """One row of the vector index: id, vector and flat metadata."""

    id: str
    vector: List[float]
    metadata: Dict[str, Any]


@dataclass
class ScoredMatch:
    score: float
    metadata: Dict[str, Any]

    @property
    def url(self) -> str:
        return self.metadata.get("url", "")

    @property
    def title(self) -> str:
        return self.metadata.get("title", "")

    @property
    def text(self) -> str:
        return self.metadata.get("text", "")


@dataclass
class StoreResult:
    """Outcome of a best-effort content write."""

    status: str = "ok"  # "ok" | "degraded"
    chunks_stored: int = 0
    facets_stored: int = 0
    degraded_embeddings: int = 0
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def degraded(cls, reason: str, **counts: int) -> "StoreResult":
        return cls(status="degraded", reason=reason, **counts)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "chunks_stored": self.chunks_stored,
            "facets_stored": self.facets_stored,
            "degraded_embeddings": self.degraded_embeddings,
            "reason": self.reason,
        }
