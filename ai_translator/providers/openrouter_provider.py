from .base import ProviderConfig
from .openai_provider import OpenAIProvider


class OpenRouterProvider(OpenAIProvider):
    provider_name = "openrouter"
    label = "OpenRouter"
    default_base_url = "https://openrouter.ai/api/v1"

    def probe_url(self, config: ProviderConfig) -> str | None:
        # /models is public on OpenRouter, so it proves nothing about the key.
        return None
