"""Extension configuration and where it comes from.

Two sources: the environment (the CLI, after python-dotenv has loaded
``.env``) and the key-value store, where an options surface saves the
``extension_config`` record in the ``config`` namespace.
"""

import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..debug import Debuggable
from ..storage import KeyValueStore

CONFIG_NAMESPACE = "config"
CONFIG_KEY = "extension_config"


class ExtensionConfig(BaseModel):
    """Model and embedding credentials.

    Field aliases match the camelCase record an options page stores.
    """

    model_config = ConfigDict(populate_by_name=True)

    llm_provider: Literal["openai", "gemini"] = Field(default="gemini", alias="llmProvider")
    llm_model: str | None = Field(default=None, alias="llmModel")
    llm_api_key: str | None = Field(default=None, alias="llmApiKey")
    embedding_provider: Literal["openai", "gemini", "hashing"] | None = Field(
        default=None,
        alias="embeddingProvider",
        description="Defaults to the LLM provider"
    )
    embedding_model: str | None = Field(default=None, alias="embeddingModel")
    embedding_api_key: str | None = Field(default=None, alias="embeddingApiKey")

    @property
    def resolved_embedding_provider(self) -> str:
        return self.embedding_provider or self.llm_provider

    @property
    def configured(self) -> bool:
        """True when both credentials are present.

        The local hashing embedder needs no key.
        """
        if not self.llm_api_key:
            return False
        return bool(self.embedding_api_key) or self.resolved_embedding_provider == "hashing"

    def llm_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"api_key": self.llm_api_key}
        if self.llm_model:
            kwargs["model"] = self.llm_model
        return kwargs

    def embedding_kwargs(self) -> dict[str, Any]:
        if self.resolved_embedding_provider == "hashing":
            return {}
        kwargs: dict[str, Any] = {"api_key": self.embedding_api_key}
        if self.embedding_model:
            kwargs["model"] = self.embedding_model
        return kwargs


class ConfigProvider(ABC):
    """Source of the extension configuration."""

    @abstractmethod
    async def load(self) -> ExtensionConfig | None:
        """Return the configuration, or None if nothing is stored."""


class EnvConfigProvider(ConfigProvider):
    """Read configuration from environment variables.

    Variables:
        PAGEWISE_LLM_PROVIDER, PAGEWISE_LLM_MODEL, PAGEWISE_LLM_API_KEY
        PAGEWISE_EMBEDDING_PROVIDER, PAGEWISE_EMBEDDING_MODEL,
        PAGEWISE_EMBEDDING_API_KEY

    API keys fall back to OPENAI_API_KEY or GEMINI_API_KEY depending on
    the provider.
    """

    _FALLBACK_KEYS = {
        "openai": "OPENAI_API_KEY",
        "gemini": "GEMINI_API_KEY",
    }

    def __init__(self, environ: Mapping[str, str] | None = None):
        self._environ = environ if environ is not None else os.environ

    def _get(self, name: str) -> str | None:
        value = self._environ.get(name)
        return value or None

    def _key_for(self, provider: str, explicit: str) -> str | None:
        value = self._get(explicit)
        if value is None and provider in self._FALLBACK_KEYS:
            value = self._get(self._FALLBACK_KEYS[provider])
        return value

    async def load(self) -> ExtensionConfig | None:
        llm_provider = (self._get("PAGEWISE_LLM_PROVIDER") or "gemini").lower()
        embedding_provider = (self._get("PAGEWISE_EMBEDDING_PROVIDER") or llm_provider).lower()

        return ExtensionConfig(
            llm_provider=llm_provider,
            llm_model=self._get("PAGEWISE_LLM_MODEL"),
            llm_api_key=self._key_for(llm_provider, "PAGEWISE_LLM_API_KEY"),
            embedding_provider=embedding_provider,
            embedding_model=self._get("PAGEWISE_EMBEDDING_MODEL"),
            embedding_api_key=self._key_for(embedding_provider, "PAGEWISE_EMBEDDING_API_KEY"),
        )


class StoredConfigProvider(ConfigProvider, Debuggable):
    """Read and write configuration in the key-value store."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    async def load(self) -> ExtensionConfig | None:
        raw = await self._store.get(CONFIG_NAMESPACE, CONFIG_KEY)
        if raw is None:
            return None
        try:
            return ExtensionConfig.model_validate(raw)
        except ValidationError as e:
            self._debug("warning", "Config", f"Ignoring invalid stored configuration: {e}")
            return None

    async def save(self, config: ExtensionConfig) -> None:
        await self._store.set(
            CONFIG_NAMESPACE, CONFIG_KEY, config.model_dump(mode="json", by_alias=True)
        )


class ChainedConfigProvider(ConfigProvider):
    """Return the first configured result among several providers.

    Falls back to the first non-empty result so callers can still report
    which credentials are missing.
    """

    def __init__(self, *providers: ConfigProvider):
        if not providers:
            raise ValueError("At least one config provider is required")
        self._providers = providers

    async def load(self) -> ExtensionConfig | None:
        fallback = None
        for provider in self._providers:
            config = await provider.load()
            if config is None:
                continue
            if config.configured:
                return config
            fallback = fallback or config
        return fallback
