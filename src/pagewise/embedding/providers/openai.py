from typing import Any

import numpy as np
from numpy.typing import NDArray
from openai import AsyncOpenAI

from ..base import EmbeddingProvider


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embedding provider implementation.

    Hidden design decisions:
    - OpenAI API client initialization
    - Batch requests are split to stay under the per-request input limit
    - Response items are re-ordered by their index
    """

    _MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    _MAX_BATCH = 2048

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str | None = None,
        organization: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize OpenAI embedding provider.

        Args:
            api_key: OpenAI API key
            model: Embedding model to use (default: text-embedding-3-small)
            base_url: Optional custom API base URL
            organization: Optional organization ID
            **client_kwargs: Additional kwargs for AsyncOpenAI client

        Raises:
            ValueError: If the model is unknown
        """
        if model not in self._MODEL_DIMENSIONS:
            raise ValueError(
                f"Unknown model: {model}. "
                f"Supported models: {list(self._MODEL_DIMENSIONS.keys())}"
            )

        self._model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            **client_kwargs
        )

    @property
    def dimension(self) -> int:
        return self._MODEL_DIMENSIONS[self._model]

    async def embed_text(self, text: str, **kwargs: Any) -> NDArray[np.float32]:
        response = await self._client.embeddings.create(
            input=text,
            model=self._model,
            **kwargs
        )
        return np.array(response.data[0].embedding, dtype=np.float32)

    async def embed_batch(
        self,
        texts: list[str],
        **kwargs: Any
    ) -> list[NDArray[np.float32]]:
        if not texts:
            return []

        embeddings: list[NDArray[np.float32]] = []
        for start in range(0, len(texts), self._MAX_BATCH):
            response = await self._client.embeddings.create(
                input=texts[start:start + self._MAX_BATCH],
                model=self._model,
                **kwargs
            )
            items = sorted(response.data, key=lambda item: item.index)
            embeddings.extend(
                np.array(item.embedding, dtype=np.float32) for item in items
            )

        return embeddings

    async def close(self) -> None:
        """Close the OpenAI client."""
        await self._client.close()
