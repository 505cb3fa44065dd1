from .openai_provider import OpenAIProvider


class MistralProvider(OpenAIProvider):
    provider_name = "mistral"
    label = "Mistral"
    default_base_url = "https://api.mistral.ai/v1"
