import httpx
import structlog

from coverage_server.repositories.interfaces.llm_provider import ILLMProvider, SYSTEM_PROMPT

logger = structlog.get_logger()


class OllamaProvider(ILLMProvider):
    """Ollama's native ``/api/generate`` endpoint"""

    name = "Ollama"
    default_base_url = "http://localhost:11434"

    def server_url(self) -> str:
        return (self.config.base_url or self.default_base_url).rstrip("/")

    async def is_healthy(self) -> bool:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(f"{self.server_url()}/api/tags")
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("Ollama health check failed", base_url=self.server_url(), error=str(e))
            return False

    async def generate_completion(self, prompt: str, system_prompt: str = SYSTEM_PROMPT) -> str:
        payload = {
            "model": self.config.model,
            "prompt": f"{system_prompt}\n\n{prompt}",
            "stream": False,
            "options": {
                "num_predict": self.config.max_tokens,
                "temperature": self.config.temperature,
            },
        }
        # generation on local hardware can take minutes
        async with httpx.AsyncClient(timeout=None) as client:
            response = await client.post(f"{self.server_url()}/api/generate", json=payload)
            response.raise_for_status()
            return response.json().get("response", "") or ""
