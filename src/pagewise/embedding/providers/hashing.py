"""Local hashing embedding provider.

Bag-of-words vectors built with the hashing trick. Deterministic, offline
and fast, which makes it the provider used by tests and by the CLI when no
embedding credentials are configured. Quality is lexical only.
"""

import hashlib
import re
from typing import Any

import numpy as np
from numpy.typing import NDArray

from ..base import EmbeddingProvider

_TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)


class HashingEmbeddingProvider(EmbeddingProvider):
    """Hashing-trick embedding provider.

    Hidden design decisions:
    - Tokens are lower-cased word characters
    - Each token increments one bucket chosen by blake2b; counts are never
      negative, so cosine similarity between two vectors is always >= 0
    - Vectors are L2-normalised; empty text maps to the zero vector
    """

    def __init__(self, dimension: int = 512):
        """Initialize the provider.

        Args:
            dimension: Number of hash buckets

        Raises:
            ValueError: If dimension is below 1
        """
        if dimension < 1:
            raise ValueError("dimension must be at least 1")
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def _bucket(self, token: str) -> int:
        digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
        return int.from_bytes(digest, "little") % self._dimension

    def _embed(self, text: str) -> NDArray[np.float32]:
        vector = np.zeros(self._dimension, dtype=np.float32)
        for token in _TOKEN_PATTERN.findall(text.lower()):
            vector[self._bucket(token)] += 1.0

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector

    async def embed_text(self, text: str, **kwargs: Any) -> NDArray[np.float32]:
        return self._embed(text)

    async def embed_batch(
        self,
        texts: list[str],
        **kwargs: Any
    ) -> list[NDArray[np.float32]]:
        return [self._embed(text) for text in texts]

    async def close(self) -> None:
        """Nothing to close."""
