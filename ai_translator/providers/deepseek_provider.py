from .openai_provider import OpenAIProvider


class DeepSeekProvider(OpenAIProvider):
    provider_name = "deepseek"
    label = "DeepSeek"
    default_base_url = "https://api.deepseek.com/v1"
