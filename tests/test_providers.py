"""
Request/response shape tests for every provider executor.
HTTP is served by httpx.MockTransport; no network access.
"""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import json
import time
import httpx
import pytest

from ai_translator.cancellation import CancellationToken
from ai_translator.errors import (
    BackendError,
    ConfigurationError,
    MalformedResponseError,
    OperationCancelled,
    TransportError,
)
from ai_translator.providers.anthropic_provider import AnthropicProvider
from ai_translator.providers.azure_provider import AzureOpenAIProvider
from ai_translator.providers.base import CallSettings, HTTPExecutor, ProviderConfig, extract_text, join_endpoint
from ai_translator.providers.deepseek_provider import DeepSeekProvider
from ai_translator.providers.google_provider import GoogleProvider
from ai_translator.providers.lmstudio_provider import LMStudioProvider
from ai_translator.providers.mistral_provider import MistralProvider
from ai_translator.providers.ollama_provider import OllamaProvider
from ai_translator.providers.openai_provider import OpenAIProvider
from ai_translator.providers.openrouter_provider import OpenRouterProvider


CS = CallSettings(max_tokens=512, request_timeout_seconds=5)
CHAT_OK = {"choices": [{"message": {"role": "assistant", "content": "Bonjour"}}]}


def run(coro):
    return asyncio.run(coro)


class Recorder:
    """MockTransport handler that records requests and replays a canned response."""

    def __init__(self, response=None, status=200, headers=None, raw=None):
        self.requests = []
        self.response = response
        self.status = status
        self.headers = headers or {}
        self.raw = raw

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raw is not None:
            return httpx.Response(self.status, text=self.raw, headers=self.headers)
        return httpx.Response(self.status, json=self.response, headers=self.headers)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def body(self) -> dict:
        return json.loads(self.last.content)


def execute(provider, config, token=None):
    return run(provider.execute(config, "SYSTEM", "# Hello", token or CancellationToken(), CS))


# ═══════════════════════════════════════════════════════════════
# OpenAI-compatible family
# ═══════════════════════════════════════════════════════════════
class TestOpenAICompatible:
    @pytest.mark.parametrize("cls,url", [
        (OpenAIProvider, "https://api.openai.com/v1/chat/completions"),
        (DeepSeekProvider, "https://api.deepseek.com/v1/chat/completions"),
        (MistralProvider, "https://api.mistral.ai/v1/chat/completions"),
        (OpenRouterProvider, "https://openrouter.ai/api/v1/chat/completions"),
    ])
    def test_default_endpoint_and_bearer(self, cls, url):
        rec = Recorder(CHAT_OK)
        provider = cls(transport=httpx.MockTransport(rec))
        config = ProviderConfig(provider=cls.provider_name, api_key="sk-1", model="m", temperature=0.3)
        assert execute(provider, config) == "Bonjour"
        assert str(rec.last.url) == url
        assert rec.last.method == "POST"
        assert rec.last.headers["authorization"] == "Bearer sk-1"

    def test_body_shape(self):
        rec = Recorder(CHAT_OK)
        provider = OpenAIProvider(transport=httpx.MockTransport(rec))
        execute(provider, ProviderConfig(provider="openai", api_key="k", model="gpt-4o", temperature=0.2))
        body = rec.body
        assert body["model"] == "gpt-4o"
        assert body["messages"] == [
            {"role": "system", "content": "SYSTEM"},
            {"role": "user", "content": "# Hello"},
        ]
        assert body["temperature"] == 0.2
        assert body["max_tokens"] == 512

    def test_custom_endpoint_base(self):
        rec = Recorder(CHAT_OK)
        provider = OpenAIProvider(transport=httpx.MockTransport(rec))
        execute(provider, ProviderConfig(provider="openai", api_key="k", model="m", custom_endpoint="https://proxy.local/v1/"))
        assert str(rec.last.url) == "https://proxy.local/v1/chat/completions"

    def test_custom_endpoint_full_url_kept(self):
        rec = Recorder(CHAT_OK)
        provider = DeepSeekProvider(transport=httpx.MockTransport(rec))
        execute(provider, ProviderConfig(provider="deepseek", api_key="k", model="m", custom_endpoint="https://api.deepseek.com/chat/completions"))
        assert str(rec.last.url) == "https://api.deepseek.com/chat/completions"

    def test_missing_key_fails_before_network(self):
        rec = Recorder(CHAT_OK)
        provider = OpenAIProvider(transport=httpx.MockTransport(rec))
        with pytest.raises(ConfigurationError):
            execute(provider, ProviderConfig(provider="openai", api_key="", model="m"))
        assert rec.requests == []

    @pytest.mark.parametrize("cls,url", [
        (OllamaProvider, "http://localhost:11434/v1/chat/completions"),
        (LMStudioProvider, "http://localhost:1234/v1/chat/completions"),
    ])
    def test_local_backends_send_no_auth(self, cls, url):
        rec = Recorder(CHAT_OK)
        provider = cls(transport=httpx.MockTransport(rec))
        assert execute(provider, ProviderConfig(provider=cls.provider_name, api_key="", model="llama2")) == "Bonjour"
        assert str(rec.last.url) == url
        assert "authorization" not in rec.last.headers


# ═══════════════════════════════════════════════════════════════
# Azure / Anthropic / Google
# ═══════════════════════════════════════════════════════════════
class TestAzure:
    def test_deployment_url_and_api_key_header(self):
        rec = Recorder(CHAT_OK)
        provider = AzureOpenAIProvider(transport=httpx.MockTransport(rec))
        config = ProviderConfig(provider="azureopenai", api_key="az", model="my-deploy", custom_endpoint="https://res.openai.azure.com/")
        assert execute(provider, config) == "Bonjour"
        assert rec.last.url.path == "/openai/deployments/my-deploy/chat/completions"
        assert rec.last.url.params["api-version"] == "2024-02-15-preview"
        assert rec.last.headers["api-key"] == "az"
        assert "model" not in rec.body

    @pytest.mark.parametrize("endpoint,model", [("", "deploy"), ("https://res.openai.azure.com", "")])
    def test_endpoint_and_deployment_required(self, endpoint, model):
        rec = Recorder(CHAT_OK)
        provider = AzureOpenAIProvider(transport=httpx.MockTransport(rec))
        with pytest.raises(ConfigurationError):
            execute(provider, ProviderConfig(provider="azureopenai", api_key="az", model=model, custom_endpoint=endpoint))
        assert rec.requests == []


class TestAnthropic:
    def test_request_and_content_path(self):
        rec = Recorder({"content": [{"type": "text", "text": "Bon"}, {"type": "text", "text": "jour"}]})
        provider = AnthropicProvider(transport=httpx.MockTransport(rec))
        config = ProviderConfig(provider="anthropic", api_key="ak", model="claude-3-opus-20240229", temperature=0.5)
        assert execute(provider, config) == "Bonjour"
        assert str(rec.last.url) == "https://api.anthropic.com/v1/messages"
        assert rec.last.headers["x-api-key"] == "ak"
        assert rec.last.headers["anthropic-version"] == "2023-06-01"
        body = rec.body
        assert body["system"] == "SYSTEM"
        assert body["messages"] == [{"role": "user", "content": "# Hello"}]
        assert body["max_tokens"] == 512
        assert body["temperature"] == 0.5

    def test_missing_content_is_malformed(self):
        provider = AnthropicProvider(transport=httpx.MockTransport(Recorder({"content": []})))
        with pytest.raises(MalformedResponseError):
            execute(provider, ProviderConfig(provider="anthropic", api_key="ak", model="m"))


class TestGoogle:
    def test_request_and_candidates_path(self):
        rec = Recorder({"candidates": [{"content": {"parts": [{"text": "Bonjour"}]}}]})
        provider = GoogleProvider(transport=httpx.MockTransport(rec))
        config = ProviderConfig(provider="google", api_key="gk", model="gemini-pro", temperature=0.1)
        assert execute(provider, config) == "Bonjour"
        assert rec.last.url.path == "/v1beta/models/gemini-pro:generateContent"
        assert rec.last.url.params["key"] == "gk"
        body = rec.body
        assert body["systemInstruction"] == {"parts": [{"text": "SYSTEM"}]}
        assert body["contents"] == [{"role": "user", "parts": [{"text": "# Hello"}]}]
        assert body["generationConfig"] == {"temperature": 0.1, "maxOutputTokens": 512}

    def test_blocked_prompt_is_malformed(self):
        provider = GoogleProvider(transport=httpx.MockTransport(Recorder({"promptFeedback": {"blockReason": "SAFETY"}})))
        with pytest.raises(MalformedResponseError):
            execute(provider, ProviderConfig(provider="google", api_key="gk", model="gemini-pro"))


# ═══════════════════════════════════════════════════════════════
# Failure mapping
# ═══════════════════════════════════════════════════════════════
class TestFailures:
    CONFIG = ProviderConfig(provider="openai", api_key="k", model="m")

    def test_http_error_status(self):
        provider = OpenAIProvider(transport=httpx.MockTransport(Recorder({"error": "down"}, status=503)))
        with pytest.raises(BackendError) as exc_info:
            execute(provider, self.CONFIG)
        assert exc_info.value.status_code == 503
        assert "down" in exc_info.value.body

    def test_redirect_status_is_backend_error(self):
        rec = Recorder(raw="moved", status=307, headers={"Location": "https://elsewhere.example/"})
        provider = OpenAIProvider(transport=httpx.MockTransport(rec))
        with pytest.raises(BackendError) as exc_info:
            execute(provider, self.CONFIG)
        assert exc_info.value.status_code == 307
        assert exc_info.value.body == "moved"

    def test_retry_after_parsed(self):
        rec = Recorder({"error": "slow down"}, status=429, headers={"Retry-After": "12"})
        provider = OpenAIProvider(transport=httpx.MockTransport(rec))
        with pytest.raises(BackendError) as exc_info:
            execute(provider, self.CONFIG)
        assert exc_info.value.retry_after == 12

    def test_connect_error_is_transport(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        provider = OpenAIProvider(transport=httpx.MockTransport(handler))
        with pytest.raises(TransportError):
            execute(provider, self.CONFIG)

    def test_non_json_is_malformed(self):
        provider = OpenAIProvider(transport=httpx.MockTransport(Recorder(raw="<html>oops</html>")))
        with pytest.raises(MalformedResponseError):
            execute(provider, self.CONFIG)

    def test_missing_field_is_malformed(self):
        provider = OpenAIProvider(transport=httpx.MockTransport(Recorder({"choices": []})))
        with pytest.raises(MalformedResponseError):
            execute(provider, self.CONFIG)

    def test_token_aborts_in_flight_request(self):
        async def slow(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json=CHAT_OK)

        provider = OpenAIProvider(transport=httpx.MockTransport(slow))

        async def scenario():
            token = CancellationToken()
            asyncio.get_running_loop().call_later(0.05, token.cancel)
            return await provider.execute(self.CONFIG, "s", "u", token, CS)

        started = time.monotonic()
        with pytest.raises(OperationCancelled):
            run(scenario())
        assert time.monotonic() - started < 2


# ═══════════════════════════════════════════════════════════════
# Connection checks
# ═══════════════════════════════════════════════════════════════
class TestCheckConnection:
    def test_models_probe_success(self):
        rec = Recorder({"data": []})
        provider = OpenAIProvider(transport=httpx.MockTransport(rec))
        msg = run(provider.check_connection(ProviderConfig(provider="openai", api_key="k", model="gpt-4o"), timeout=5))
        assert msg == "Successfully connected to OpenAI API."
        assert rec.last.method == "GET"
        assert str(rec.last.url) == "https://api.openai.com/v1/models"

    def test_falls_back_to_post(self):
        seen = []

        def handler(request):
            seen.append(request.method)
            if request.method == "GET":
                return httpx.Response(404, json={"error": "no listing"})
            return httpx.Response(200, json=CHAT_OK)

        provider = MistralProvider(transport=httpx.MockTransport(handler))
        msg = run(provider.check_connection(ProviderConfig(provider="mistral", api_key="k", model="mistral-large-latest"), timeout=5))
        assert seen == ["GET", "POST"]
        assert "mistral-large-latest" in msg

    def test_post_only_backend(self):
        rec = Recorder({"content": [{"type": "text", "text": "h"}]})
        provider = AnthropicProvider(transport=httpx.MockTransport(rec))
        run(provider.check_connection(ProviderConfig(provider="anthropic", api_key="k", model="m"), timeout=5))
        assert [r.method for r in rec.requests] == ["POST"]
        assert rec.body["max_tokens"] == 1

    def test_post_failure_raises(self):
        provider = AnthropicProvider(transport=httpx.MockTransport(Recorder({"error": "bad key"}, status=401)))
        with pytest.raises(BackendError):
            run(provider.check_connection(ProviderConfig(provider="anthropic", api_key="k", model="m"), timeout=5))


# ═══════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════
class TestHelpers:
    def test_join_endpoint(self):
        assert join_endpoint("https://a/v1/", "/chat/completions") == "https://a/v1/chat/completions"
        assert join_endpoint("https://a/v1/chat/completions", "/chat/completions") == "https://a/v1/chat/completions"

    def test_extract_text_path(self):
        assert extract_text({"a": [{"b": "x"}]}, ["a", 0, "b"]) == "x"

    def test_extract_text_rejects_non_string(self):
        with pytest.raises(MalformedResponseError):
            extract_text({"a": [{"b": None}]}, ["a", 0, "b"])
        with pytest.raises(MalformedResponseError):
            extract_text("not a dict", ["a"])


class TestExecutorHooks:
    def test_base_executor_is_abstract(self):
        with pytest.raises(TypeError):
            HTTPExecutor()

    def test_subclass_without_extract_cannot_instantiate(self):
        class Partial(HTTPExecutor):
            provider_name = "partial"

            def build_request(self, config, system, user, call_settings):
                return None

        with pytest.raises(TypeError):
            Partial()
