from .base import ProviderConfig
from .openai_provider import OpenAIProvider


class LMStudioProvider(OpenAIProvider):
    provider_name = "lmstudio"
    label = "LM Studio"
    default_base_url = "http://localhost:1234/v1"
    local = True

    def probe_url(self, config: ProviderConfig) -> str | None:
        # Listing models does not tell whether the configured one is loaded.
        return None
