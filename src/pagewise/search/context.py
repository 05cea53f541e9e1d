"""Grounding context assembly.

Two tiers: ranked chunks when retrieval finds something relevant, the full
page snapshot otherwise. A query whose wording misses every chunk still gets
the whole page rather than no context at all.
"""

from enum import Enum

from pydantic import BaseModel, Field

from ..debug import Debuggable
from .index import RetrievalError, RetrievalIndex
from .models import SearchResult


class ContextMode(str, Enum):
    """Where the grounding text came from."""

    RETRIEVAL = "retrieval"  # Ranked chunks above threshold
    SNAPSHOT = "snapshot"    # Full page text
    NONE = "none"            # Nothing known about the page


class GroundingContext(BaseModel):
    """Context handed to the agent loop."""

    mode: ContextMode
    text: str = ""
    results: list[SearchResult] = Field(default_factory=list)


def format_results(results: list[SearchResult]) -> str:
    """Render ranked chunks as numbered documents with their relevance."""
    return "\n\n".join(
        f"[Document {i}]\n{result.text}\n(Relevance: {result.score * 100:.1f}%)"
        for i, result in enumerate(results, 1)
    )


class ContextAssembler(Debuggable):
    """Choose between ranked chunks and the page snapshot.

    Args:
        index: Retrieval index to search
        limit: Maximum chunks in a retrieval context
        threshold: Minimum similarity for a chunk to count
    """

    def __init__(self, index: RetrievalIndex, limit: int = 5, threshold: float = 0.3):
        self._index = index
        self._limit = limit
        self._threshold = threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    async def assemble(
        self,
        tab_id: str,
        query: str,
        enable_rag: bool = True
    ) -> GroundingContext:
        """Build the grounding context for one turn.

        Retrieval failures are reported through the debug callback and
        treated as "no results"; they never fail the turn.
        """
        if enable_rag:
            try:
                results = await self._index.search(
                    tab_id, query, limit=self._limit, threshold=self._threshold
                )
            except RetrievalError as e:
                self._debug("warning", "ContextAssembler", f"Retrieval failed, using snapshot: {e}")
                results = []

            if results:
                self._debug(
                    "debug", "ContextAssembler",
                    f"Tab {tab_id}: {len(results)} chunks above {self._threshold}"
                )
                return GroundingContext(
                    mode=ContextMode.RETRIEVAL,
                    text=format_results(results),
                    results=results
                )

        snapshot = await self._index.snapshot(tab_id)
        if snapshot is None or not snapshot.content.strip():
            return GroundingContext(mode=ContextMode.NONE)
        return GroundingContext(mode=ContextMode.SNAPSHOT, text=snapshot.content)
