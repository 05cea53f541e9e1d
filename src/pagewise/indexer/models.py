from typing import Any

from pydantic import BaseModel, Field


class DocumentChunk(BaseModel):
    """A piece of page text ready for embedding."""

    text: str = Field(description="Chunk text")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Page metadata (url, title) copied onto every chunk"
    )
    tab_id: str = Field(description="Tab the page belongs to")
    chunk_index: int = Field(ge=0, description="Position within the page (0-indexed)")
    total_chunks: int = Field(ge=1, description="Number of chunks the page produced")
