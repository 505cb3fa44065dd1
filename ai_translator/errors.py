class TranslatorError(Exception):
    """Base class for every failure surfaced by the translation engine."""


class ConfigurationError(TranslatorError):
    """A required setting is missing or invalid. Never retried."""


class UnsupportedProviderError(TranslatorError):
    def __init__(self, provider_id: str):
        super().__init__(f"Unsupported provider: {provider_id}")
        self.provider_id = provider_id


class TransportError(TranslatorError):
    """The request failed before any response arrived (connect, timeout, protocol)."""


class BackendError(TranslatorError):
    """The backend answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str, retry_after: float | None = None):
        snippet = (body or "").strip()[:300]
        super().__init__(f"HTTP {status_code}: {snippet}" if snippet else f"HTTP {status_code}")
        self.status_code = status_code
        self.body = body
        self.retry_after = retry_after


class MalformedResponseError(TranslatorError):
    """A success response did not carry the expected text field."""


class OperationCancelled(TranslatorError):
    """The user or the system aborted the operation."""

    def __init__(self, message: str = "Operation cancelled by user."):
        super().__init__(message)


class TranslatorBusyError(TranslatorError):
    """Another translation is already running on this service."""
