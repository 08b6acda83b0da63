import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Type

import structlog
from pydantic import BaseModel, Field
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

logger = structlog.get_logger()

DEFAULT_CONFIG_FILE = "mcp.config.json"

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _normalize_keys(value: Any) -> Any:
    """Convert camelCase keys of a JSON object (recursively) to snake_case"""
    if isinstance(value, dict):
        return {_to_snake(k): _normalize_keys(v) for k, v in value.items()}
    return value


class CoverageThresholds(BaseModel):
    statements: int = 100
    branches: int = 100
    functions: int = 100
    lines: int = 100


class LLMProviderConfig(BaseModel):
    type: Literal["openai", "lmstudio", "ollama", "llamacpp", "mlx", "gemini"] = "openai"
    base_url: Optional[str] = None
    model: str
    api_key: Optional[str] = None
    max_tokens: int = 2000
    temperature: float = 0.2


class JsonConfigFileSource(PydanticBaseSettingsSource):
    """Settings source backed by the optional ``mcp.config.json`` file.

    Keys may be written in camelCase (as the JavaScript tooling does) and are
    normalized to the snake_case field names. An ``llmProvider`` object maps to
    ``llm_provider_config`` so it does not collide with the ``LLM_PROVIDER``
    environment variable. Values from the file take precedence over the
    environment.
    """

    def __init__(self, settings_cls: Type[BaseSettings], config_path: Path):
        super().__init__(settings_cls)
        self.config_path = config_path
        self._data = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.config_path.is_file():
            return {}
        try:
            raw = json.loads(self.config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Failed to load config file, using defaults", path=str(self.config_path), error=str(e))
            return {}
        if not isinstance(raw, dict):
            logger.warning("Config file is not a JSON object, using defaults", path=str(self.config_path))
            return {}

        data = _normalize_keys(raw)
        if isinstance(data.get("llm_provider"), dict):
            data["llm_provider_config"] = data.pop("llm_provider")
        logger.info("Loaded configuration from file", path=str(self.config_path))
        return data

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        return {k: v for k, v in self._data.items() if k in self.settings_cls.model_fields}


class Settings(BaseSettings):
    # API Configuration
    debug: bool = False
    environment: str = "development"
    version: str = "2.0.0"
    api_host: str = "0.0.0.0"
    port: int = 3000
    api_prefix: str = ""
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    # Project under test
    project_root: str = Field(default_factory=lambda: str(Path.cwd()))
    coverage_dir: str = "coverage"
    coverage_file: str = "coverage-final.json"
    coverage_thresholds: CoverageThresholds = Field(default_factory=CoverageThresholds)

    # Extra directories scanned for plugin modules
    plugin_dirs: List[str] = Field(default_factory=list)

    # LLM Configuration (secrets come from environment)
    llm_provider: str = "openai"
    llm_provider_config: Optional[LLMProviderConfig] = None
    llm_model: Optional[str] = None
    ai_max_files: int = 5
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    lmstudio_base_url: str = "http://localhost:1234"
    ollama_base_url: str = "http://localhost:11434"
    llamacpp_base_url: str = "http://localhost:8080"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-pro"

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        config_path = Path(os.environ.get("MCP_CONFIG_PATH", DEFAULT_CONFIG_FILE))
        return (
            init_settings,
            JsonConfigFileSource(settings_cls, config_path),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )


# Global settings instance
settings = Settings()
