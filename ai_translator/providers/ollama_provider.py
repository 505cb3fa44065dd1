from .openai_provider import OpenAIProvider


class OllamaProvider(OpenAIProvider):
    """Local Ollama server through its OpenAI-compatible API. No auth header."""

    provider_name = "ollama"
    label = "Ollama"
    default_base_url = "http://localhost:11434/v1"
    local = True
