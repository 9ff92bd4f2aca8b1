from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import tomli
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_PATH = Path("config/appsettings.toml")

# (toml section, toml key) -> settings field
_TOML_KEYS = {
    ("llm", "provider"): "llm_provider",
    ("llm", "model"): "llm_model",
    ("llm", "api_key"): "llm_api_key",
    ("llm", "temperature"): "llm_temperature",
    ("llm", "max_tokens"): "llm_max_tokens",
    ("llm", "timeout"): "llm_timeout",
    ("llm", "max_attempts"): "llm_max_attempts",
    ("ctgov", "base_url"): "ctgov_base_url",
    ("ctgov", "backend"): "ctgov_backend",
    ("ctgov", "page_size"): "ctgov_page_size",
    ("ctgov", "max_results"): "ctgov_max_results",
    ("ctgov", "timeout"): "ctgov_timeout",
    ("ctgov", "user_agent"): "ctgov_user_agent",
    ("server", "client_url"): "client_url",
    ("server", "host"): "host",
    ("server", "port"): "port",
    ("logging", "level"): "log_level",
}


class Settings(BaseSettings):
    """Application configuration loaded from file and environment."""

    llm_provider: str = "openai"
    llm_model: str | None = None
    llm_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("llm_api_key", "openai_api_key")
    )
    llm_temperature: float = 0.1
    llm_max_tokens: int = 1000
    llm_timeout: float = 30.0
    llm_max_attempts: int = Field(default=1, ge=1)

    ctgov_base_url: str = "https://clinicaltrials.gov/api/v2"
    ctgov_backend: str = "httpx"
    ctgov_page_size: int = Field(default=20, ge=1)
    ctgov_max_results: int = Field(default=10, ge=1)
    ctgov_timeout: float = 30.0
    ctgov_user_agent: str | None = None

    client_url: str = "http://localhost:3000"
    host: str = "0.0.0.0"
    port: int = 5001
    log_level: str = "INFO"

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("ctgov_backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"httpx", "requests"}:
            raise ValueError(
                "ClinicalTrials.gov API backend must be one of {'httpx', 'requests'}"
            )
        return normalized

    @field_validator("llm_provider", "log_level")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @classmethod
    def settings_customise_sources(
            cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        return (
            init_settings,
            env_settings,
            cls._toml_config_settings_source,
            file_secret_settings,
        )

    @classmethod
    def _toml_config_settings_source(cls, *args: Any) -> Dict[str, Any]:
        if not CONFIG_PATH.exists():
            return {}
        data = tomli.loads(CONFIG_PATH.read_text())
        values: Dict[str, Any] = {}
        for (section, key), field_name in _TOML_KEYS.items():
            section_data = data.get(section, {})
            if isinstance(section_data, dict) and section_data.get(key) is not None:
                values[field_name] = section_data[key]
        return values


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
