from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

import httpx

from ..cancellation import CancellationToken
from ..errors import BackendError, ConfigurationError, MalformedResponseError, TransportError


@dataclass(frozen=True)
class ProviderConfig:
    provider: str
    api_key: str = ""
    model: str = ""
    custom_endpoint: str = ""
    temperature: float = 0.7


@dataclass(frozen=True)
class CallSettings:
    target_language: str = "English"
    max_tokens: int = 2048
    retry_enabled: bool = True
    retry_interval_seconds: float = 5
    max_retries: int = 3
    request_timeout_seconds: float = 120

    @property
    def max_attempts(self) -> int:
        return max(0, self.max_retries) + 1 if self.retry_enabled else 1

    @property
    def interval_ms(self) -> float:
        return max(0, self.retry_interval_seconds) * 1000 if self.retry_enabled else 0


@dataclass
class PreparedRequest:
    url: str
    headers: dict
    payload: dict
    params: dict | None = None


class Executor(Protocol):
    provider_name: str

    async def execute(
        self,
        config: ProviderConfig,
        system_prompt: str,
        user_content: str,
        token: CancellationToken,
        call_settings: CallSettings,
    ) -> str: ...

    async def check_connection(self, config: ProviderConfig, timeout: float) -> str: ...


def join_endpoint(base: str, suffix: str) -> str:
    base = base.rstrip("/")
    if not suffix or base.endswith(suffix):
        return base
    return f"{base}{suffix}"


def require(value: str, message: str) -> str:
    if not (value or "").strip():
        raise ConfigurationError(message)
    return value.strip()


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("retry-after")
    if not raw:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        return None


async def send_json(
    method: str,
    url: str,
    *,
    headers: dict,
    token: CancellationToken,
    timeout: float,
    payload: dict | None = None,
    params: dict | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    async def _send() -> httpx.Response:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            return await client.request(method, url, headers=headers, json=payload, params=params)

    try:
        r = await token.guard(_send())
    except httpx.HTTPError as e:
        raise TransportError(f"{type(e).__name__}: {e}") from e

    if not r.is_success:
        raise BackendError(r.status_code, r.text, retry_after=_retry_after(r))
    try:
        return r.json()
    except ValueError as e:
        raise MalformedResponseError(f"Response from {url} is not valid JSON") from e


async def post_json(url: str, *, headers: dict, payload: dict, token: CancellationToken, timeout: float, params: dict | None = None, transport: httpx.AsyncBaseTransport | None = None) -> Any:
    return await send_json("POST", url, headers=headers, payload=payload, params=params, token=token, timeout=timeout, transport=transport)


async def get_json(url: str, *, headers: dict, token: CancellationToken, timeout: float, params: dict | None = None, transport: httpx.AsyncBaseTransport | None = None) -> Any:
    return await send_json("GET", url, headers=headers, params=params, token=token, timeout=timeout, transport=transport)


class HTTPExecutor(ABC):
    """One POST per attempt: build the backend's request, send it, pull out the text.

    Subclasses describe the backend through ``build_request`` and ``extract``;
    retry decisions never happen here.
    """

    provider_name = ""
    label = ""
    local = False

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self.transport = transport

    @abstractmethod
    def build_request(self, config: ProviderConfig, system: str, user: str, call_settings: CallSettings) -> PreparedRequest:
        """Describe the POST for one attempt."""

    @abstractmethod
    def extract(self, data: Any) -> str:
        """Pull the translated text out of a decoded response."""

    def probe_url(self, config: ProviderConfig) -> str | None:
        return None

    async def execute(
        self,
        config: ProviderConfig,
        system_prompt: str,
        user_content: str,
        token: CancellationToken,
        call_settings: CallSettings,
    ) -> str:
        req = self.build_request(config, system_prompt, user_content, call_settings)
        data = await post_json(
            req.url,
            headers=req.headers,
            payload=req.payload,
            params=req.params,
            token=token,
            timeout=call_settings.request_timeout_seconds,
            transport=self.transport,
        )
        return self.extract(data)

    async def check_connection(self, config: ProviderConfig, timeout: float) -> str:
        token = CancellationToken()
        probe = CallSettings(max_tokens=1, retry_enabled=False, request_timeout_seconds=timeout)
        req = self.build_request(config, "You are a helpful assistant", "Test", probe)

        url = self.probe_url(config)
        if url:
            try:
                await get_json(url, headers=req.headers, params=req.params, token=token, timeout=timeout, transport=self.transport)
                return f"Successfully connected to {self.label} API."
            except (TransportError, BackendError, MalformedResponseError):
                # Some gateways hide the listing endpoint; a one-token completion decides.
                pass

        await post_json(req.url, headers=req.headers, payload=req.payload, params=req.params, token=token, timeout=timeout, transport=self.transport)
        if config.model:
            return f"Successfully connected to {self.label} API using model '{config.model}'."
        return f"Successfully connected to {self.label} API."


def extract_text(data: Any, path: Sequence[str | int]) -> str:
    node = data
    for key in path:
        try:
            node = node[key]
        except (KeyError, IndexError, TypeError):
            raise MalformedResponseError(f"Response is missing {_render_path(path)}") from None
    if not isinstance(node, str) or not node.strip():
        raise MalformedResponseError(f"Response field {_render_path(path)} is empty")
    return node


def _render_path(path: Sequence[str | int]) -> str:
    out = ""
    for key in path:
        out += f"[{key}]" if isinstance(key, int) else (f".{key}" if out else key)
    return out
