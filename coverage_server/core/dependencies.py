from typing import Optional

from fastapi import HTTPException, status

from coverage_server.config.settings import Settings, settings
from coverage_server.services.llm_service import LLMService, resolve_provider_config


class Container:
    """Dependency injection container"""

    def __init__(self):
        self._llm_service: Optional[LLMService] = None

    def llm_service(self) -> LLMService:
        """Get LLM service instance (singleton)"""
        if self._llm_service is None:
            self._llm_service = LLMService(resolve_provider_config(settings))
        return self._llm_service


# Global container instance
container = Container()


# Dependency providers for FastAPI
def get_settings() -> Settings:
    """FastAPI dependency for application settings"""
    return settings


def get_llm_service() -> LLMService:
    """FastAPI dependency for the LLM service"""
    return container.llm_service()


def require_project_path(project_path: Optional[str]) -> str:
    if not project_path:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing projectPath")
    return project_path


def project_path_or_default(project_path: Optional[str]) -> str:
    """Tools that historically ran in the server's cwd default to the configured project"""
    return project_path or settings.project_root
