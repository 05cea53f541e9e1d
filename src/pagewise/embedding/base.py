from abc import ABC, abstractmethod
from typing import Any

import numpy as np
from numpy.typing import NDArray


class EmbeddingProvider(ABC):
    """Turns page chunks and user queries into comparable vectors.

    The retrieval index embeds a page's chunks once per URL and each query
    once per turn; ranking is cosine similarity, so a provider only has to
    keep one vector space for both. Which backend (hosted API or the
    offline hashing model) produces that space stays behind this class.
    """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector this provider returns."""

    @abstractmethod
    async def embed_text(self, text: str, **kwargs: Any) -> NDArray[np.float32]:
        """Embed one query or chunk as a float32 vector of ``dimension``."""

    @abstractmethod
    async def embed_batch(
        self,
        texts: list[str],
        **kwargs: Any
    ) -> list[NDArray[np.float32]]:
        """Embed many chunks, one vector per text in the same order.

        An empty list must come back empty without contacting the backend.
        """

    async def embed_chunks(self, texts: list[str]) -> list[NDArray[np.float32]]:
        """Embed a page's chunk texts and check the backend kept its contract.

        Raises:
            ValueError: If the vector count or width does not match
        """
        if not texts:
            return []

        vectors = await self.embed_batch(texts)
        if len(vectors) != len(texts):
            raise ValueError(f"Expected {len(texts)} vectors, got {len(vectors)}")
        for vector in vectors:
            if vector.shape != (self.dimension,):
                raise ValueError(f"Expected vectors of width {self.dimension}, got shape {vector.shape}")
        return vectors

    @abstractmethod
    async def close(self) -> None:
        """Release the backend client."""
