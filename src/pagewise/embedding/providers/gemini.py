"""Google Gemini embedding provider.

Uses the Google GenAI SDK's async ``embed_content`` endpoint.
"""

from typing import Any

import numpy as np
from google import genai
from google.genai import types
from numpy.typing import NDArray

from ..base import EmbeddingProvider


class GeminiEmbeddingProvider(EmbeddingProvider):
    """Gemini embedding provider implementation.

    Hidden design decisions:
    - Google GenAI client initialization
    - Documents and queries share one task type so their vectors compare
    - Output dimensionality is pinned so stored vectors stay comparable
    """

    _MODEL_DIMENSIONS = {
        "text-embedding-004": 768,
        "gemini-embedding-001": 3072,
    }

    _MAX_BATCH = 100

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-004",
        task_type: str = "SEMANTIC_SIMILARITY",
        **client_kwargs: Any
    ):
        """Initialize Gemini embedding provider.

        Args:
            api_key: Google AI API key
            model: Embedding model (text-embedding-004, gemini-embedding-001)
            task_type: Gemini embedding task type
            **client_kwargs: Additional kwargs for Client

        Raises:
            ValueError: If the model is unknown
        """
        if model not in self._MODEL_DIMENSIONS:
            raise ValueError(
                f"Unknown model: {model}. "
                f"Supported models: {list(self._MODEL_DIMENSIONS.keys())}"
            )

        self._model = model
        self._task_type = task_type
        self._client = genai.Client(api_key=api_key, **client_kwargs)

    @property
    def dimension(self) -> int:
        return self._MODEL_DIMENSIONS[self._model]

    def _config(self) -> types.EmbedContentConfig:
        return types.EmbedContentConfig(
            task_type=self._task_type,
            output_dimensionality=self.dimension
        )

    async def embed_text(self, text: str, **kwargs: Any) -> NDArray[np.float32]:
        embeddings = await self.embed_batch([text], **kwargs)
        return embeddings[0]

    async def embed_batch(
        self,
        texts: list[str],
        **kwargs: Any
    ) -> list[NDArray[np.float32]]:
        if not texts:
            return []

        embeddings: list[NDArray[np.float32]] = []
        for start in range(0, len(texts), self._MAX_BATCH):
            response = await self._client.aio.models.embed_content(
                model=self._model,
                contents=texts[start:start + self._MAX_BATCH],
                config=self._config(),
                **kwargs
            )
            embeddings.extend(
                np.array(item.values, dtype=np.float32)
                for item in response.embeddings or []
            )

        if len(embeddings) != len(texts):
            raise RuntimeError(
                f"Gemini returned {len(embeddings)} embeddings for {len(texts)} inputs"
            )
        return embeddings

    async def close(self) -> None:
        """Close the Gemini client.

        The GenAI client holds no resources that need explicit closing.
        """
