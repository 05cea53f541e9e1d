"""Page text chunking."""

from .models import DocumentChunk
from .splitter import DEFAULT_SEPARATORS, TextSplitter

__all__ = [
    "DEFAULT_SEPARATORS",
    "DocumentChunk",
    "TextSplitter",
]
