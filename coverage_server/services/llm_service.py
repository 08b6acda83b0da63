from typing import Dict, Optional, Type

import structlog

from coverage_server.config.settings import LLMProviderConfig, Settings
from coverage_server.core.exceptions import LLMNotConfiguredError
from coverage_server.repositories.interfaces.llm_provider import ILLMProvider
from coverage_server.repositories.implementations.gemini_provider import GeminiProvider
from coverage_server.repositories.implementations.mlx_provider import MLXProvider
from coverage_server.repositories.implementations.ollama_provider import OllamaProvider
from coverage_server.repositories.implementations.openai_provider import (
    LlamaCppProvider,
    LMStudioProvider,
    OpenAIProvider,
)

logger = structlog.get_logger()

PROVIDERS: Dict[str, Type[ILLMProvider]] = {
    "openai": OpenAIProvider,
    "lmstudio": LMStudioProvider,
    "ollama": OllamaProvider,
    "llamacpp": LlamaCppProvider,
    "mlx": MLXProvider,
    "gemini": GeminiProvider,
}

# Backends that need an API key before they can be used
_KEYED_PROVIDERS = {"openai", "gemini"}


def _with_environment_defaults(config: LLMProviderConfig, settings: Settings) -> LLMProviderConfig:
    api_keys = {"openai": settings.openai_api_key, "gemini": settings.gemini_api_key}
    base_urls = {
        "openai": settings.openai_base_url,
        "lmstudio": settings.lmstudio_base_url,
        "ollama": settings.ollama_base_url,
        "llamacpp": settings.llamacpp_base_url,
    }
    updates = {}
    if config.api_key is None and api_keys.get(config.type):
        updates["api_key"] = api_keys[config.type]
    if config.base_url is None and config.type in base_urls:
        updates["base_url"] = base_urls[config.type]
    return config.model_copy(update=updates) if updates else config


def resolve_provider_config(settings: Settings) -> LLMProviderConfig:
    """Pick the LLM backend configuration.

    An ``llmProvider`` object in the config file wins; otherwise the backend is
    chosen by ``LLM_PROVIDER`` with per-backend environment defaults. A file
    entry without ``apiKey`` or ``baseUrl`` takes them from the environment.
    """
    if settings.llm_provider_config:
        return _with_environment_defaults(settings.llm_provider_config, settings)

    provider_type = settings.llm_provider.lower()
    model = settings.llm_model

    if provider_type == "lmstudio":
        return LLMProviderConfig(type="lmstudio", base_url=settings.lmstudio_base_url, model=model or "local-model")
    if provider_type == "ollama":
        return LLMProviderConfig(type="ollama", base_url=settings.ollama_base_url, model=model or "llama2")
    if provider_type == "llamacpp":
        return LLMProviderConfig(type="llamacpp", base_url=settings.llamacpp_base_url, model=model or "model.gguf")
    if provider_type == "mlx":
        return LLMProviderConfig(type="mlx", model=model or "./models/local-model")
    if provider_type == "gemini":
        return LLMProviderConfig(type="gemini", model=model or settings.gemini_model, api_key=settings.gemini_api_key)

    if provider_type != "openai":
        logger.warning("Unknown LLM provider, falling back to OpenAI", provider=provider_type)
    return LLMProviderConfig(
        type="openai",
        base_url=settings.openai_base_url,
        model=model or "gpt-4o-mini",
        api_key=settings.openai_api_key,
    )


class LLMService:
    """Facade over the configured language-model backend"""

    def __init__(self, config: LLMProviderConfig):
        self.config = config
        self.provider: Optional[ILLMProvider] = None

    @property
    def is_configured(self) -> bool:
        if self.config.type in _KEYED_PROVIDERS:
            return bool(self.config.api_key)
        return True

    @property
    def provider_name(self) -> str:
        if self.provider is not None:
            return self.provider.name
        return PROVIDERS.get(self.config.type, OpenAIProvider).name

    def create_provider(self) -> ILLMProvider:
        provider_cls = PROVIDERS.get(self.config.type, OpenAIProvider)
        return provider_cls(self.config)

    def _ensure_provider(self) -> ILLMProvider:
        if not self.is_configured:
            raise LLMNotConfiguredError(f"{self.provider_name} API key not configured")
        if self.provider is None:
            self.provider = self.create_provider()
        return self.provider

    async def initialize(self) -> bool:
        """Create the provider and check that it responds"""
        provider = self._ensure_provider()
        if not await provider.is_healthy():
            logger.warning("LLM provider is not healthy", provider=provider.name)
            return False
        logger.info("LLM provider initialized", provider=provider.name, model=self.config.model)
        return True

    async def check_health(self) -> bool:
        return await self._ensure_provider().is_healthy()

    async def generate_completion(self, prompt: str) -> str:
        return await self._ensure_provider().generate_completion(prompt)
