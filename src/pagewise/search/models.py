from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from ..indexer import DocumentChunk


class SearchResult(BaseModel):
    """A chunk returned by similarity search."""

    text: str = Field(description="Chunk text")
    score: float = Field(description="Cosine similarity to the query")
    chunk_index: int = Field(description="Position of the chunk within its page")
    metadata: dict[str, Any] = Field(default_factory=dict)


class PageSnapshot(BaseModel):
    """Untruncated page text kept as the fallback context."""

    url: str = Field(description="Canonical page URL")
    title: str = ""
    content: str = Field(description="Full page text")
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class IndexedPage(BaseModel):
    """Embedded chunks of one tab's page.

    ``embeddings[i]`` is the vector of ``chunks[i]``.
    """

    tab_id: str
    url: str = Field(description="Canonical URL the index was built from")
    chunks: list[DocumentChunk] = Field(default_factory=list)
    embeddings: list[list[float]] = Field(default_factory=list)
