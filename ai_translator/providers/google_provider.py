from typing import Any

from .base import CallSettings, HTTPExecutor, PreparedRequest, ProviderConfig, extract_text, require


class GoogleProvider(HTTPExecutor):
    provider_name = "google"
    label = "Google AI"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"

    def build_request(self, config: ProviderConfig, system: str, user: str, call_settings: CallSettings) -> PreparedRequest:
        api_key = require(config.api_key, "Google AI API key is not set.")
        model = require(config.model, "Google AI model is not set.")
        base = (config.custom_endpoint or self.default_base_url).rstrip("/")
        payload = {
            "systemInstruction": {"parts": [{"text": system}]},
            "contents": [{"role": "user", "parts": [{"text": user}]}],
            "generationConfig": {
                "temperature": config.temperature,
                "maxOutputTokens": call_settings.max_tokens,
            },
        }
        return PreparedRequest(
            url=f"{base}/models/{model}:generateContent",
            headers={"Content-Type": "application/json"},
            payload=payload,
            params={"key": api_key},
        )

    def extract(self, data: Any) -> str:
        text = extract_text(data, ["candidates", 0, "content", "parts", 0, "text"])
        for part in data["candidates"][0]["content"]["parts"][1:]:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                text += part["text"]
        return text
