from abc import ABC, abstractmethod

from coverage_server.config.settings import LLMProviderConfig

SYSTEM_PROMPT = "You are a helpful assistant that writes high-quality React component tests."


class ILLMProvider(ABC):
    """Interface for a language-model backend"""

    name: str = "LLM"

    def __init__(self, config: LLMProviderConfig):
        self.config = config

    @abstractmethod
    async def is_healthy(self) -> bool:
        """Check whether the backend is reachable and usable"""
        pass

    @abstractmethod
    async def generate_completion(self, prompt: str, system_prompt: str = SYSTEM_PROMPT) -> str:
        """Return the model's reply to a single prompt"""
        pass

    def get_config(self) -> LLMProviderConfig:
        return self.config
