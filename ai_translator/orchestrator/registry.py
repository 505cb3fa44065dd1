from dataclasses import dataclass
from typing import Dict, Mapping

from ..errors import UnsupportedProviderError
from ..providers.anthropic_provider import AnthropicProvider
from ..providers.azure_provider import AzureOpenAIProvider
from ..providers.base import Executor, ProviderConfig
from ..providers.deepseek_provider import DeepSeekProvider
from ..providers.google_provider import GoogleProvider
from ..providers.lmstudio_provider import LMStudioProvider
from ..providers.mistral_provider import MistralProvider
from ..providers.ollama_provider import OllamaProvider
from ..providers.openai_provider import OpenAIProvider
from ..providers.openrouter_provider import OpenRouterProvider


@dataclass(frozen=True)
class ProviderSpec:
    provider_id: str
    label: str
    executor: Executor
    default_model: str
    default_endpoint: str = ""
    default_api_key: str = ""


PROVIDERS: Dict[str, ProviderSpec] = {
    "openai": ProviderSpec("openai", "OpenAI", OpenAIProvider(), "gpt-4o"),
    "google": ProviderSpec("google", "Google AI", GoogleProvider(), "gemini-pro"),
    "anthropic": ProviderSpec("anthropic", "Anthropic", AnthropicProvider(), "claude-3-opus-20240229"),
    "deepseek": ProviderSpec("deepseek", "DeepSeek", DeepSeekProvider(), "deepseek-coder"),
    "mistral": ProviderSpec("mistral", "Mistral", MistralProvider(), "mistral-large-latest"),
    "openrouter": ProviderSpec("openrouter", "OpenRouter", OpenRouterProvider(), "mistralai/mistral-7b-instruct"),
    "azureopenai": ProviderSpec("azureopenai", "Azure OpenAI", AzureOpenAIProvider(), "gpt-4o"),
    "ollama": ProviderSpec(
        "ollama", "Ollama", OllamaProvider(), "llama2",
        default_endpoint="http://localhost:11434/v1", default_api_key="ollama",
    ),
    "lmstudio": ProviderSpec(
        "lmstudio", "LM Studio", LMStudioProvider(), "local-model",
        default_endpoint="http://localhost:1234/v1", default_api_key="lmstudio",
    ),
}


def get_provider(provider_id: str) -> ProviderSpec:
    spec = PROVIDERS.get((provider_id or "").strip().lower())
    if spec is None:
        raise UnsupportedProviderError(provider_id)
    return spec


def build_config(provider_id: str, overrides: Mapping[str, str] | None = None, temperature: float = 0.7) -> ProviderConfig:
    """Provider defaults with user overrides on top; blank overrides keep the default."""
    spec = get_provider(provider_id)
    overrides = overrides or {}
    return ProviderConfig(
        provider=spec.provider_id,
        api_key=overrides.get("api_key") or spec.default_api_key,
        model=overrides.get("model") or spec.default_model,
        custom_endpoint=overrides.get("custom_endpoint") or spec.default_endpoint,
        temperature=temperature,
    )
