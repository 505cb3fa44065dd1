from typing import Any

from .base import CallSettings, HTTPExecutor, PreparedRequest, ProviderConfig, extract_text, join_endpoint, require

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(HTTPExecutor):
    provider_name = "anthropic"
    label = "Anthropic"
    default_base_url = "https://api.anthropic.com/v1"

    def build_request(self, config: ProviderConfig, system: str, user: str, call_settings: CallSettings) -> PreparedRequest:
        api_key = require(config.api_key, "Anthropic API key is not set.")
        headers = {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        payload = {
            "model": config.model,
            "max_tokens": call_settings.max_tokens,
            "temperature": config.temperature,
            "system": system,
            "messages": [{"role": "user", "content": user}],
        }
        url = join_endpoint(config.custom_endpoint or self.default_base_url, "/messages")
        return PreparedRequest(url=url, headers=headers, payload=payload)

    def extract(self, data: Any) -> str:
        # The first block must be text; later text blocks are appended.
        text = extract_text(data, ["content", 0, "text"])
        for c in data["content"][1:]:
            if isinstance(c, dict) and c.get("type") == "text" and isinstance(c.get("text"), str):
                text += c["text"]
        return text
