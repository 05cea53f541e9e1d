"""Per-tab retrieval index and context assembly."""

from .context import ContextAssembler, ContextMode, GroundingContext
from .index import RetrievalError, RetrievalIndex, canonicalize_url
from .models import IndexedPage, PageSnapshot, SearchResult

__all__ = [
    "ContextAssembler",
    "ContextMode",
    "GroundingContext",
    "IndexedPage",
    "PageSnapshot",
    "RetrievalError",
    "RetrievalIndex",
    "SearchResult",
    "canonicalize_url",
]
