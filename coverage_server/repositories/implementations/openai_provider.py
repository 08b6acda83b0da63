import asyncio
from typing import Optional

import httpx
import structlog
from openai import OpenAI

from coverage_server.config.settings import LLMProviderConfig
from coverage_server.repositories.interfaces.llm_provider import ILLMProvider, SYSTEM_PROMPT

logger = structlog.get_logger()


class OpenAIProvider(ILLMProvider):
    """Chat-completions backend for OpenAI and OpenAI-compatible servers"""

    name = "OpenAI"
    default_base_url = "https://api.openai.com/v1"

    def __init__(self, config: LLMProviderConfig):
        super().__init__(config)
        # local servers accept any key, the SDK refuses an empty one
        self.client = OpenAI(
            base_url=self.api_base_url(),
            api_key=config.api_key or "not-needed",
        )

    def api_base_url(self) -> str:
        return self.config.base_url or self.default_base_url

    async def is_healthy(self) -> bool:
        def sync_call():
            try:
                self.client.models.list()
                return True
            except Exception as e:
                logger.warning("LLM health check failed", provider=self.name, error=str(e))
                return False
        return await asyncio.get_event_loop().run_in_executor(None, sync_call)

    async def generate_completion(self, prompt: str, system_prompt: str = SYSTEM_PROMPT) -> str:
        def sync_call():
            logger.info("Calling chat completions", provider=self.name, model=self.config.model)
            response = self.client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt}
                ],
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            )
            if not response.choices:
                return ""
            return response.choices[0].message.content or ""
        return await asyncio.get_event_loop().run_in_executor(None, sync_call)


class LMStudioProvider(OpenAIProvider):
    """LM Studio's local server speaks the OpenAI API under ``/v1``"""

    name = "LM Studio"
    default_base_url = "http://localhost:1234"

    def api_base_url(self) -> str:
        return f"{self.server_url()}/v1"

    def server_url(self) -> str:
        return (self.config.base_url or self.default_base_url).rstrip("/")


class LlamaCppProvider(LMStudioProvider):
    name = "llama.cpp"
    default_base_url = "http://localhost:8080"

    async def is_healthy(self) -> bool:
        if await super().is_healthy():
            return True

        # older llama.cpp servers lack /v1/models
        base = self.server_url()
        async with httpx.AsyncClient() as client:
            response: Optional[httpx.Response] = None
            try:
                response = await client.get(f"{base}/health")
            except httpx.HTTPError:
                pass
            if response is not None and response.status_code == 200:
                return True
            try:
                await client.get(base)
                return True
            except httpx.HTTPError as e:
                logger.warning("llama.cpp server unreachable", base_url=base, error=str(e))
                return False
