from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .orchestrator.registry import build_config
from .providers.base import CallSettings, ProviderConfig


class ProviderOverrides(BaseModel):
    api_key: str = ""
    model: str = ""
    custom_endpoint: str = ""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", env_nested_delimiter="__", populate_by_name=True)

    llm_provider: str = Field(default="openai", alias="LLM_PROVIDER")
    temperature: float = Field(default=0.7, alias="TEMPERATURE")
    max_tokens: int = Field(default=2048, alias="MAX_TOKENS")
    target_language: str = Field(default="English", alias="TARGET_LANGUAGE")
    output_path: str = Field(default="translations", alias="OUTPUT_PATH")

    retry_enabled: bool = Field(default=True, alias="RETRY_ENABLED")
    retry_interval_seconds: float = Field(default=5, alias="RETRY_INTERVAL_SECONDS")
    max_retries: int = Field(default=3, alias="MAX_RETRIES")
    request_timeout_seconds: float = Field(default=120, alias="REQUEST_TIMEOUT_SECONDS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # e.g. PROVIDERS__OPENAI__API_KEY=sk-... or PROVIDERS='{"openai": {"api_key": "sk-..."}}'
    providers: Dict[str, ProviderOverrides] = Field(default_factory=dict, alias="PROVIDERS")

    @field_validator("providers")
    @classmethod
    def _lowercase_provider_ids(cls, v: Dict[str, ProviderOverrides]) -> Dict[str, ProviderOverrides]:
        return {k.strip().lower(): o for k, o in v.items()}

    @field_validator("temperature")
    @classmethod
    def _temperature_range(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("temperature must be between 0 and 2")
        return v

    @field_validator("max_tokens")
    @classmethod
    def _positive_tokens(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("max_tokens must be positive")
        return v

    @field_validator("retry_interval_seconds", "max_retries", "request_timeout_seconds")
    @classmethod
    def _non_negative(cls, v):
        if v < 0:
            raise ValueError("must not be negative")
        return v

    def call_settings(self, target_language: Optional[str] = None) -> CallSettings:
        return CallSettings(
            target_language=target_language or self.target_language,
            max_tokens=self.max_tokens,
            retry_enabled=self.retry_enabled,
            retry_interval_seconds=self.retry_interval_seconds,
            max_retries=self.max_retries,
            request_timeout_seconds=self.request_timeout_seconds,
        )

    def provider_config(self, provider_id: Optional[str] = None) -> ProviderConfig:
        provider_id = (provider_id or self.llm_provider).strip().lower()
        overrides = self.providers.get(provider_id)
        return build_config(
            provider_id,
            overrides.model_dump() if overrides else None,
            temperature=self.temperature,
        )


settings = Settings()
