"""In-process retrieval index keyed by tab.

Hidden design decisions:
- One IndexedPage per tab, rebuilt wholesale when the canonical URL changes
- Vectors live in a numpy matrix per tab; cosine similarity is one matmul
- Indices and snapshots are mirrored to the key-value store
  (namespaces ``vectors`` and ``pages``) and reloaded on a cache miss
- Persistence failures are reported, never raised, so they cannot fail
  ingestion
"""

from urllib.parse import urlsplit, urlunsplit

import numpy as np
from numpy.typing import NDArray
from pydantic import ValidationError

from ..debug import Debuggable
from ..embedding import EmbeddingProvider
from ..indexer import TextSplitter
from ..messaging.models import PageInfo
from ..storage import KeyValueStore
from .models import IndexedPage, PageSnapshot, SearchResult

VECTORS_NAMESPACE = "vectors"
PAGES_NAMESPACE = "pages"


class RetrievalError(Exception):
    """Embedding or search failed for a tab."""


def canonicalize_url(url: str) -> str:
    """Normalise a URL for change detection.

    Scheme and host are lower-cased, the fragment is dropped and a trailing
    slash on the path is removed.

    >>> canonicalize_url("HTTPS://Example.com/Docs/#intro")
    'https://example.com/Docs'
    """
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


class RetrievalIndex(Debuggable):
    """Chunk, embed and search the page open in each tab.

    Args:
        embedder: Embedding provider for chunks and queries
        store: Optional key-value store for persistence
        splitter: Text splitter (500 characters, 100 overlap by default)
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: KeyValueStore | None = None,
        splitter: TextSplitter | None = None
    ):
        self._embedder = embedder
        self._store = store
        self._splitter = splitter or TextSplitter()
        self._pages: dict[str, IndexedPage] = {}
        self._matrices: dict[str, NDArray[np.float32]] = {}
        self._snapshots: dict[str, PageSnapshot] = {}

    async def ingest(self, tab_id: str, page: PageInfo) -> bool:
        """Index a page for a tab unless it is already indexed.

        A new canonical URL always replaces the snapshot and the vectors,
        even when the new page has no text. An unchanged URL is re-indexed
        only if its earlier snapshot had no chunks and text has arrived.

        Args:
            tab_id: Tab identifier
            page: Page URL, title and full text

        Returns:
            True if the index was (re)built, False if it is unchanged

        Raises:
            RetrievalError: If embedding fails (the snapshot is still stored)
        """
        url = canonicalize_url(page.url)
        has_text = bool(page.content.strip())
        current = await self._load(tab_id)
        if current is not None and current.url == url and (current.chunks or not has_text):
            self._debug("debug", "RetrievalIndex", f"Tab {tab_id}: {url} already indexed")
            return False

        snapshot = PageSnapshot(url=url, title=page.title, content=page.content)
        self._snapshots[tab_id] = snapshot
        await self._persist(PAGES_NAMESPACE, tab_id, snapshot.model_dump(mode="json"))

        chunks = []
        if has_text:
            chunks = self._splitter.split_page(
                tab_id, page.content, metadata={"url": url, "title": page.title}
            )
        try:
            vectors = await self._embedder.embed_chunks([chunk.text for chunk in chunks])
        except Exception as e:
            self._drop_index(tab_id)
            await self._persist(VECTORS_NAMESPACE, tab_id, None)
            raise RetrievalError(f"Failed to embed page for tab {tab_id}: {e}") from e

        indexed = IndexedPage(
            tab_id=tab_id,
            url=url,
            chunks=chunks,
            embeddings=[vector.tolist() for vector in vectors]
        )
        self._cache(indexed)
        await self._persist(VECTORS_NAMESPACE, tab_id, indexed.model_dump(mode="json"))

        self._debug(
            "info", "RetrievalIndex",
            f"Tab {tab_id}: indexed {len(chunks)} chunks from {url or '<no url>'}"
        )
        return True

    async def search(
        self,
        tab_id: str,
        query: str,
        limit: int = 5,
        threshold: float = 0.3
    ) -> list[SearchResult]:
        """Return chunks at or above threshold, most similar first.

        Args:
            tab_id: Tab identifier
            query: Query text
            limit: Maximum number of results
            threshold: Minimum cosine similarity

        Returns:
            At most ``limit`` results; empty if the tab has no index

        Raises:
            RetrievalError: If the query cannot be embedded
        """
        indexed = await self._load(tab_id)
        if indexed is None or not indexed.chunks or limit < 1:
            return []

        try:
            query_vector = await self._embedder.embed_text(query)
        except Exception as e:
            raise RetrievalError(f"Failed to embed query for tab {tab_id}: {e}") from e

        scores = _cosine_scores(self._matrices[tab_id], np.asarray(query_vector, dtype=np.float32))
        order = np.argsort(-scores, kind="stable")

        results = []
        for i in order:
            score = float(scores[i])
            if score < threshold:
                break
            chunk = indexed.chunks[i]
            results.append(SearchResult(
                text=chunk.text,
                score=score,
                chunk_index=chunk.chunk_index,
                metadata=chunk.metadata
            ))
            if len(results) >= limit:
                break

        self._debug("debug", "RetrievalIndex", f"Tab {tab_id}: {len(results)} results for query")
        return results

    async def snapshot(self, tab_id: str) -> PageSnapshot | None:
        """Return the untruncated page text for a tab, if any."""
        if tab_id in self._snapshots:
            return self._snapshots[tab_id]

        raw = await self._fetch(PAGES_NAMESPACE, tab_id)
        if raw is None:
            return None
        try:
            snapshot = PageSnapshot.model_validate(raw)
        except ValidationError as e:
            self._debug("warning", "RetrievalIndex", f"Discarding corrupt snapshot for tab {tab_id}: {e}")
            return None

        self._snapshots[tab_id] = snapshot
        return snapshot

    async def document_count(self, tab_id: str) -> int:
        indexed = await self._load(tab_id)
        return len(indexed.chunks) if indexed else 0

    async def clear(self, tab_id: str) -> None:
        """Drop a tab's index and snapshot, cached and persisted."""
        self._drop_index(tab_id)
        self._snapshots.pop(tab_id, None)
        await self._persist(VECTORS_NAMESPACE, tab_id, None)
        await self._persist(PAGES_NAMESPACE, tab_id, None)
        self._debug("info", "RetrievalIndex", f"Tab {tab_id}: index cleared")

    async def close(self) -> None:
        """Close the embedding provider."""
        await self._embedder.close()

    def _cache(self, indexed: IndexedPage) -> None:
        self._pages[indexed.tab_id] = indexed
        dimension = len(indexed.embeddings[0]) if indexed.embeddings else self._embedder.dimension
        self._matrices[indexed.tab_id] = np.asarray(
            indexed.embeddings, dtype=np.float32
        ).reshape(len(indexed.embeddings), dimension)

    def _drop_index(self, tab_id: str) -> None:
        self._pages.pop(tab_id, None)
        self._matrices.pop(tab_id, None)

    async def _load(self, tab_id: str) -> IndexedPage | None:
        if tab_id in self._pages:
            return self._pages[tab_id]

        raw = await self._fetch(VECTORS_NAMESPACE, tab_id)
        if raw is None:
            return None
        try:
            indexed = IndexedPage.model_validate(raw)
        except ValidationError as e:
            self._debug("warning", "RetrievalIndex", f"Discarding corrupt index for tab {tab_id}: {e}")
            return None

        self._cache(indexed)
        self._debug("debug", "RetrievalIndex", f"Tab {tab_id}: reloaded {len(indexed.chunks)} chunks")
        return indexed

    async def _fetch(self, namespace: str, tab_id: str):
        if self._store is None:
            return None
        try:
            return await self._store.get(namespace, tab_id)
        except Exception as e:
            self._debug("error", "RetrievalIndex", f"Failed to read {namespace}/{tab_id}: {e}")
            return None

    async def _persist(self, namespace: str, tab_id: str, value) -> None:
        if self._store is None:
            return
        try:
            await self._store.set(namespace, tab_id, value)
        except Exception as e:
            self._debug("error", "RetrievalIndex", f"Failed to persist {namespace}/{tab_id}: {e}")


def _cosine_scores(matrix: NDArray[np.float32], query: NDArray[np.float32]) -> NDArray[np.float32]:
    """Cosine similarity of every row against the query; zero vectors score 0."""
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
