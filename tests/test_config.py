"""Tests for extension configuration sources."""
import pytest

from pagewise.chat import ChainedConfigProvider, EnvConfigProvider, ExtensionConfig, StoredConfigProvider
from pagewise.chat.config import CONFIG_KEY, CONFIG_NAMESPACE


class TestExtensionConfig:
    """Tests for the ExtensionConfig model."""

    def test_accepts_stored_aliases(self):
        config = ExtensionConfig.model_validate({
            "llmProvider": "openai",
            "llmApiKey": "sk-llm",
            "embeddingApiKey": "sk-emb",
            "embeddingModel": "text-embedding-3-large",
        })

        assert config.llm_provider == "openai"
        assert config.resolved_embedding_provider == "openai"
        assert config.embedding_kwargs() == {"api_key": "sk-emb", "model": "text-embedding-3-large"}

    def test_configured_needs_both_keys(self):
        assert not ExtensionConfig().configured
        assert not ExtensionConfig(llm_api_key="key").configured
        assert ExtensionConfig(llm_api_key="key", embedding_api_key="key").configured

    def test_hashing_embedder_needs_no_key(self):
        config = ExtensionConfig(llm_api_key="key", embedding_provider="hashing")

        assert config.configured
        assert config.embedding_kwargs() == {}

    def test_llm_kwargs_include_model_when_set(self):
        assert ExtensionConfig(llm_api_key="k").llm_kwargs() == {"api_key": "k"}
        assert ExtensionConfig(llm_api_key="k", llm_model="gpt-4o").llm_kwargs() == {
            "api_key": "k", "model": "gpt-4o"
        }


class TestEnvConfigProvider:
    """Tests for reading configuration from the environment."""

    @pytest.mark.asyncio
    async def test_explicit_variables(self):
        config = await EnvConfigProvider({
            "PAGEWISE_LLM_PROVIDER": "OpenAI",
            "PAGEWISE_LLM_MODEL": "gpt-4o-mini",
            "PAGEWISE_LLM_API_KEY": "sk-llm",
            "PAGEWISE_EMBEDDING_API_KEY": "sk-emb",
        }).load()

        assert config.llm_provider == "openai"
        assert config.llm_model == "gpt-4o-mini"
        assert config.embedding_provider == "openai"
        assert config.embedding_api_key == "sk-emb"

    @pytest.mark.asyncio
    async def test_provider_key_fallback(self):
        config = await EnvConfigProvider({"GEMINI_API_KEY": "g-key"}).load()

        assert config.llm_provider == "gemini"
        assert config.llm_api_key == "g-key"
        assert config.embedding_api_key == "g-key"
        assert config.configured

    @pytest.mark.asyncio
    async def test_empty_environment_is_not_configured(self):
        config = await EnvConfigProvider({"PAGEWISE_LLM_API_KEY": ""}).load()

        assert config.llm_api_key is None
        assert not config.configured


class TestStoredConfigProvider:
    """Tests for configuration kept in the key-value store."""

    @pytest.mark.asyncio
    async def test_nothing_stored(self, kv_store):
        assert await StoredConfigProvider(kv_store).load() is None

    @pytest.mark.asyncio
    async def test_save_and_load(self, kv_store):
        provider = StoredConfigProvider(kv_store)
        await provider.save(ExtensionConfig(llm_provider="openai", llm_api_key="sk", embedding_provider="hashing"))

        raw = await kv_store.get(CONFIG_NAMESPACE, CONFIG_KEY)
        assert raw["llmProvider"] == "openai"

        config = await provider.load()
        assert config.llm_api_key == "sk"
        assert config.configured

    @pytest.mark.asyncio
    async def test_invalid_record_is_ignored(self, kv_store):
        messages = []
        provider = StoredConfigProvider(kv_store)
        provider.set_debug_callback(lambda level, component, message: messages.append(level))
        await kv_store.set(CONFIG_NAMESPACE, CONFIG_KEY, {"llmProvider": "mystery"})

        assert await provider.load() is None
        assert messages == ["warning"]


class TestChainedConfigProvider:
    """Tests for combining configuration sources."""

    @pytest.mark.asyncio
    async def test_first_configured_wins(self, kv_store):
        stored = StoredConfigProvider(kv_store)
        await stored.save(ExtensionConfig(llm_api_key="stored", embedding_provider="hashing"))
        env = EnvConfigProvider({"GEMINI_API_KEY": "env"})

        config = await ChainedConfigProvider(stored, env).load()

        assert config.llm_api_key == "stored"

    @pytest.mark.asyncio
    async def test_skips_unconfigured(self, kv_store):
        stored = StoredConfigProvider(kv_store)
        await stored.save(ExtensionConfig(llm_api_key="stored"))
        env = EnvConfigProvider({"GEMINI_API_KEY": "env"})

        config = await ChainedConfigProvider(stored, env).load()

        assert config.llm_api_key == "env"

    @pytest.mark.asyncio
    async def test_falls_back_to_first_result(self, kv_store):
        env = EnvConfigProvider({})
        config = await ChainedConfigProvider(StoredConfigProvider(kv_store), env).load()

        assert config is not None
        assert not config.configured

    def test_requires_a_provider(self):
        with pytest.raises(ValueError):
            ChainedConfigProvider()
