from typing import Any

from .base import EmbeddingProvider
from .providers import (
    GeminiEmbeddingProvider,
    HashingEmbeddingProvider,
    OpenAIEmbeddingProvider,
)


def create_embedding_provider(provider: str, **config: Any) -> EmbeddingProvider:
    """Create an embedding provider instance.

    Args:
        provider: Provider type ('openai', 'gemini', 'hashing')
        **config: Provider-specific configuration
            For OpenAI:
                - api_key: str (required)
                - model: str (default: 'text-embedding-3-small')
                - base_url: str | None
            For Gemini:
                - api_key: str (required)
                - model: str (default: 'text-embedding-004')
            For hashing (local, no network):
                - dimension: int (default: 512)

    Returns:
        Initialized embedding provider instance

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> provider = create_embedding_provider(
        ...     "openai",
        ...     api_key="sk-...",
        ...     model="text-embedding-3-small"
        ... )
        >>> offline = create_embedding_provider("hashing", dimension=256)
    """
    provider_lower = provider.lower()

    if provider_lower == "openai":
        if "api_key" not in config:
            raise TypeError("OpenAI provider requires 'api_key' in config")
        return OpenAIEmbeddingProvider(**config)

    if provider_lower == "gemini":
        if "api_key" not in config:
            raise TypeError("Gemini provider requires 'api_key' in config")
        return GeminiEmbeddingProvider(**config)

    if provider_lower == "hashing":
        config.pop("api_key", None)
        config.pop("model", None)
        return HashingEmbeddingProvider(**config)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: 'openai', 'gemini', 'hashing'"
    )
