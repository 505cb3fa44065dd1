from typing import Any

from .base import CallSettings, HTTPExecutor, PreparedRequest, ProviderConfig, extract_text, require

API_VERSION = "2024-02-15-preview"


class AzureOpenAIProvider(HTTPExecutor):
    """Azure OpenAI deployment. ``config.model`` holds the deployment name."""

    provider_name = "azureopenai"
    label = "Azure OpenAI"

    def build_request(self, config: ProviderConfig, system: str, user: str, call_settings: CallSettings) -> PreparedRequest:
        endpoint = require(config.custom_endpoint, "Azure requires a Custom Endpoint and Model (Deployment Name).")
        deployment = require(config.model, "Azure requires a Custom Endpoint and Model (Deployment Name).")
        api_key = require(config.api_key, "Azure OpenAI API key is not set.")
        payload = {
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": config.temperature,
            "max_tokens": call_settings.max_tokens,
        }
        return PreparedRequest(
            url=f"{endpoint.rstrip('/')}/openai/deployments/{deployment}/chat/completions",
            headers={"api-key": api_key, "Content-Type": "application/json"},
            payload=payload,
            params={"api-version": API_VERSION},
        )

    def extract(self, data: Any) -> str:
        return extract_text(data, ["choices", 0, "message", "content"])
