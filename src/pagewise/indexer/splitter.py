"""Recursive character splitter.

Text is cut at the coarsest boundary that yields pieces no longer than the
chunk size: paragraphs first, then lines, sentences, words and finally single
characters. Adjacent pieces are merged back up to the chunk size, and each
chunk starts with up to ``chunk_overlap`` characters from the end of the
previous one.
"""

from typing import Any

from .models import DocumentChunk

DEFAULT_SEPARATORS = ("\n\n", "\n", ". ", " ", "")


class TextSplitter:
    """Split text into overlapping chunks.

    Hidden design decisions:
    - Separators stay attached to the piece they end, so every chunk is a
      contiguous substring of the input
    - Chunks are stripped of surrounding whitespace and empty chunks dropped
    """

    def __init__(
        self,
        chunk_size: int = 500,
        chunk_overlap: int = 100,
        separators: tuple[str, ...] = DEFAULT_SEPARATORS
    ):
        """Initialize the splitter.

        Args:
            chunk_size: Maximum characters per chunk
            chunk_overlap: Characters carried over from the previous chunk
            separators: Boundaries to try, coarsest first

        Raises:
            ValueError: If sizes are inconsistent
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")

        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._separators = tuple(separators) if "" in separators else (*separators, "")

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._chunk_overlap

    def split_text(self, text: str) -> list[str]:
        """Split text into chunks of at most ``chunk_size`` characters."""
        chunks = [chunk.strip() for chunk in self._split(text, self._separators)]
        return [chunk for chunk in chunks if chunk]

    def split_page(
        self,
        tab_id: str,
        text: str,
        metadata: dict[str, Any] | None = None
    ) -> list[DocumentChunk]:
        """Split a page's text into DocumentChunks carrying page metadata."""
        texts = self.split_text(text)
        return [
            DocumentChunk(
                text=chunk,
                metadata=dict(metadata or {}),
                tab_id=tab_id,
                chunk_index=i,
                total_chunks=len(texts)
            )
            for i, chunk in enumerate(texts)
        ]

    def _split(self, text: str, separators: tuple[str, ...]) -> list[str]:
        separator = separators[-1]
        finer: tuple[str, ...] = ()
        for i, candidate in enumerate(separators):
            if candidate == "" or candidate in text:
                separator = candidate
                finer = separators[i + 1:]
                break

        chunks: list[str] = []
        pending: list[str] = []
        for piece in _split_keeping_separator(text, separator):
            if len(piece) <= self._chunk_size:
                pending.append(piece)
                continue

            if pending:
                chunks.extend(self._merge(pending))
                pending = []
            chunks.extend(self._split(piece, finer))

        if pending:
            chunks.extend(self._merge(pending))
        return chunks

    def _merge(self, pieces: list[str]) -> list[str]:
        """Greedily join pieces into chunks, sliding an overlap window."""
        chunks: list[str] = []
        window: list[str] = []
        size = 0

        for piece in pieces:
            if window and size + len(piece) > self._chunk_size:
                chunks.append("".join(window))
                while window and (
                    size > self._chunk_overlap
                    or size + len(piece) > self._chunk_size
                ):
                    size -= len(window.pop(0))
            window.append(piece)
            size += len(piece)

        if window:
            chunks.append("".join(window))
        return chunks


def _split_keeping_separator(text: str, separator: str) -> list[str]:
    if separator == "":
        return list(text)
    parts = text.split(separator)
    pieces = [part + separator for part in parts[:-1]]
    pieces.append(parts[-1])
    return [piece for piece in pieces if piece]
