"""Unit tests for the embedding module."""
import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from pagewise.embedding import (
    EmbeddingProvider,
    GeminiEmbeddingProvider,
    HashingEmbeddingProvider,
    OpenAIEmbeddingProvider,
    create_embedding_provider,
)


class TestEmbeddingProviderInterface:
    """Tests for the abstract EmbeddingProvider interface."""

    def test_provider_is_abstract(self):
        """Test that EmbeddingProvider cannot be instantiated directly."""
        with pytest.raises(TypeError):
            EmbeddingProvider()  # type: ignore

    @pytest.mark.asyncio
    async def test_embed_chunks_skips_backend_for_empty_page(self):
        provider = HashingEmbeddingProvider(dimension=16)
        provider.embed_batch = AsyncMock()

        assert await provider.embed_chunks([]) == []
        provider.embed_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_embed_chunks_rejects_missing_vectors(self):
        provider = HashingEmbeddingProvider(dimension=16)
        provider.embed_batch = AsyncMock(return_value=[np.zeros(16, dtype=np.float32)])

        with pytest.raises(ValueError, match="Expected 2 vectors"):
            await provider.embed_chunks(["a", "b"])

    @pytest.mark.asyncio
    async def test_embed_chunks_rejects_wrong_width(self):
        provider = HashingEmbeddingProvider(dimension=16)
        provider.embed_batch = AsyncMock(return_value=[np.zeros(8, dtype=np.float32)])

        with pytest.raises(ValueError, match="width 16"):
            await provider.embed_chunks(["a"])


class TestOpenAIEmbeddingProvider:
    """Tests for OpenAIEmbeddingProvider."""

    def test_dimension_property(self):
        """Test that dimension property returns correct values."""
        provider_small = OpenAIEmbeddingProvider(api_key="fake-key", model="text-embedding-3-small")
        assert provider_small.dimension == 1536

        provider_large = OpenAIEmbeddingProvider(api_key="fake-key", model="text-embedding-3-large")
        assert provider_large.dimension == 3072

    def test_unknown_model_raises_error(self):
        with pytest.raises(ValueError, match="Unknown model"):
            OpenAIEmbeddingProvider(api_key="fake-key", model="unknown-model")

    @pytest.mark.asyncio
    async def test_batch_is_reordered_by_index(self):
        """Response items may arrive out of order; results follow input order."""
        provider = OpenAIEmbeddingProvider(api_key="fake-key")
        create = AsyncMock(return_value=SimpleNamespace(data=[
            SimpleNamespace(index=1, embedding=[0.0, 1.0]),
            SimpleNamespace(index=0, embedding=[1.0, 0.0]),
        ]))
        provider._client = SimpleNamespace(embeddings=SimpleNamespace(create=create))

        vectors = await provider.embed_batch(["first", "second"])

        assert [v.tolist() for v in vectors] == [[1.0, 0.0], [0.0, 1.0]]
        assert vectors[0].dtype == np.float32
        create.assert_awaited_once_with(input=["first", "second"], model="text-embedding-3-small")

    @pytest.mark.asyncio
    async def test_empty_batch_skips_api(self):
        provider = OpenAIEmbeddingProvider(api_key="fake-key")
        create = AsyncMock()
        provider._client = SimpleNamespace(embeddings=SimpleNamespace(create=create))

        assert await provider.embed_batch([]) == []
        create.assert_not_awaited()


class TestGeminiEmbeddingProvider:
    """Tests for GeminiEmbeddingProvider."""

    def test_dimension_property(self):
        assert GeminiEmbeddingProvider(api_key="fake-key").dimension == 768
        assert GeminiEmbeddingProvider(api_key="fake-key", model="gemini-embedding-001").dimension == 3072

    def test_unknown_model_raises_error(self):
        with pytest.raises(ValueError, match="Unknown model"):
            GeminiEmbeddingProvider(api_key="fake-key", model="unknown-model")

    @pytest.mark.asyncio
    async def test_count_mismatch_raises(self):
        provider = GeminiEmbeddingProvider(api_key="fake-key")
        embed_content = AsyncMock(return_value=SimpleNamespace(
            embeddings=[SimpleNamespace(values=[0.5] * 768)]
        ))
        provider._client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(embed_content=embed_content)))

        with pytest.raises(RuntimeError, match="1 embeddings for 2 inputs"):
            await provider.embed_batch(["a", "b"])

    @pytest.mark.asyncio
    async def test_embed_text(self):
        provider = GeminiEmbeddingProvider(api_key="fake-key")
        embed_content = AsyncMock(return_value=SimpleNamespace(
            embeddings=[SimpleNamespace(values=[0.25] * 768)]
        ))
        provider._client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(embed_content=embed_content)))

        vector = await provider.embed_text("hello")

        assert vector.shape == (768,)
        assert embed_content.await_args.kwargs["contents"] == ["hello"]


class TestHashingEmbeddingProvider:
    """Tests for the offline hashing provider."""

    @pytest.mark.asyncio
    async def test_vectors_are_normalised(self):
        provider = HashingEmbeddingProvider(dimension=64)

        vector = await provider.embed_text("routers for factories")

        assert vector.shape == (64,)
        assert vector.dtype == np.float32
        assert np.linalg.norm(vector) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_empty_text_is_zero_vector(self):
        vector = await HashingEmbeddingProvider(dimension=32).embed_text("  ...  ")

        assert not vector.any()

    @pytest.mark.asyncio
    async def test_case_insensitive(self):
        provider = HashingEmbeddingProvider()

        upper = await provider.embed_text("Acme Routers")
        lower = await provider.embed_text("acme routers")

        assert np.array_equal(upper, lower)

    def test_invalid_dimension(self):
        with pytest.raises(ValueError):
            HashingEmbeddingProvider(dimension=0)

    @settings(max_examples=50, deadline=None)
    @given(st.lists(st.text(max_size=80), max_size=8))
    def test_batch_matches_single(self, texts):
        """Property: batch embedding equals embedding each text alone."""
        provider = HashingEmbeddingProvider(dimension=128)

        batch = asyncio.run(provider.embed_batch(texts))
        singles = [asyncio.run(provider.embed_text(t)) for t in texts]

        assert len(batch) == len(texts)
        for a, b in zip(batch, singles):
            assert np.array_equal(a, b)
            assert float(np.dot(a, a)) <= 1.0 + 1e-5


class TestEmbeddingFactory:
    """Tests for create_embedding_provider."""

    def test_create_openai(self):
        provider = create_embedding_provider("OpenAI", api_key="fake-key")
        assert isinstance(provider, OpenAIEmbeddingProvider)

    def test_create_gemini(self):
        provider = create_embedding_provider("gemini", api_key="fake-key")
        assert isinstance(provider, GeminiEmbeddingProvider)

    def test_create_hashing_ignores_credentials(self):
        provider = create_embedding_provider("hashing", api_key="unused", model="unused", dimension=16)
        assert isinstance(provider, HashingEmbeddingProvider)
        assert provider.dimension == 16

    def test_missing_api_key(self):
        with pytest.raises(TypeError, match="api_key"):
            create_embedding_provider("openai")

    def test_unsupported_provider(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            create_embedding_provider("cohere")
