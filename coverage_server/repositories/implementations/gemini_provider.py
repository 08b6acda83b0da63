import asyncio
from typing import Optional

import google.generativeai as genai
import structlog

from coverage_server.config.settings import LLMProviderConfig
from coverage_server.core.exceptions import LLMNotConfiguredError
from coverage_server.repositories.interfaces.llm_provider import ILLMProvider, SYSTEM_PROMPT

logger = structlog.get_logger()


class GeminiProvider(ILLMProvider):
    """Google Gemini implementation of the LLM backend"""

    name = "Gemini"

    def __init__(self, config: LLMProviderConfig) -> None:
        super().__init__(config)
        self.model: Optional[genai.GenerativeModel] = None
        if config.api_key:
            genai.configure(api_key=config.api_key)
            self.model = genai.GenerativeModel(config.model)

    async def is_healthy(self) -> bool:
        return self.model is not None

    async def generate_completion(self, prompt: str, system_prompt: str = SYSTEM_PROMPT) -> str:
        if not self.model:
            raise LLMNotConfiguredError("Gemini API key not configured")

        def sync_call():
            # Type guard for static analyzers
            model = self.model
            assert model is not None
            response = model.generate_content(
                f"{system_prompt}\n\n{prompt}",
                generation_config=genai.types.GenerationConfig(
                    max_output_tokens=self.config.max_tokens,
                    temperature=self.config.temperature,
                ),
            )
            return getattr(response, "text", None) or ""

        return await asyncio.get_event_loop().run_in_executor(None, sync_call)
