from typing import Any

from .base import CallSettings, HTTPExecutor, PreparedRequest, ProviderConfig, extract_text, join_endpoint, require

CHAT_PATH = "/chat/completions"


class OpenAIProvider(HTTPExecutor):
    """Chat-completions backend. The other OpenAI-compatible services derive from it."""

    provider_name = "openai"
    label = "OpenAI"
    default_base_url = "https://api.openai.com/v1"

    def base_url(self, config: ProviderConfig) -> str:
        base = (config.custom_endpoint or self.default_base_url).rstrip("/")
        if base.endswith(CHAT_PATH):
            base = base[: -len(CHAT_PATH)]
        return base

    def headers(self, config: ProviderConfig) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.local:
            return headers
        api_key = require(config.api_key, f"{self.label} API key is not set.")
        headers["Authorization"] = f"Bearer {api_key}"
        return headers

    def build_request(self, config: ProviderConfig, system: str, user: str, call_settings: CallSettings) -> PreparedRequest:
        payload = {
            "model": config.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": config.temperature,
            "max_tokens": call_settings.max_tokens,
        }
        return PreparedRequest(
            url=join_endpoint(self.base_url(config), CHAT_PATH),
            headers=self.headers(config),
            payload=payload,
        )

    def extract(self, data: Any) -> str:
        return extract_text(data, ["choices", 0, "message", "content"])

    def probe_url(self, config: ProviderConfig) -> str | None:
        return f"{self.base_url(config)}/models"
