import logging
import time
from enum import Enum

from ..cancellation import CancellationToken, cancellable_delay
from ..errors import BackendError, ConfigurationError, OperationCancelled, UnsupportedProviderError
from ..progress import ERROR_PERCENT, ProgressReporter
from ..providers.base import CallSettings, Executor, ProviderConfig

logger = logging.getLogger(__name__)

# The request itself is invalid or unauthorized; sending it again cannot succeed.
FATAL_STATUS_CODES = frozenset({400, 401, 403, 404})
RATE_LIMITED = 429
MAX_RETRY_AFTER_SECONDS = 60


class AttemptOutcome(str, Enum):
    RETRYABLE = "retryable"
    FATAL = "fatal"
    CANCELLED = "cancelled"


def classify_failure(exc: BaseException, token: CancellationToken, reporter: ProgressReporter | None = None) -> AttemptOutcome:
    if isinstance(exc, OperationCancelled) or token.cancelled:
        return AttemptOutcome.CANCELLED
    if reporter is not None and reporter.cancelled:
        return AttemptOutcome.CANCELLED
    if isinstance(exc, (ConfigurationError, UnsupportedProviderError)):
        return AttemptOutcome.FATAL
    if isinstance(exc, BackendError) and exc.status_code in FATAL_STATUS_CODES:
        return AttemptOutcome.FATAL
    return AttemptOutcome.RETRYABLE


def retry_wait_ms(exc: BaseException, interval_ms: float) -> float:
    """Fixed interval, stretched to the backend's Retry-After on a 429."""
    if isinstance(exc, BackendError) and exc.status_code == RATE_LIMITED and exc.retry_after is not None:
        return max(interval_ms, min(exc.retry_after, MAX_RETRY_AFTER_SECONDS) * 1000)
    return interval_ms


def _stopped(reporter: ProgressReporter, text: str) -> None:
    reporter.update_status(text, ERROR_PERCENT)


async def call_with_retry(
    *,
    provider_id: str,
    config: ProviderConfig,
    system_prompt: str,
    content: str,
    call_settings: CallSettings,
    reporter: ProgressReporter,
    executor: Executor,
) -> str:
    max_attempts = call_settings.max_attempts
    interval_ms = call_settings.interval_ms

    for attempt in range(1, max_attempts + 1):
        if reporter.cancelled:
            logger.info(f"[{provider_id}] cancelled before attempt {attempt}/{max_attempts}")
            _stopped(reporter, "Translation cancelled.")
            raise OperationCancelled()

        token = CancellationToken()
        reporter.attach_token(token)
        reporter.update_status(f"Calling {provider_id} (attempt {attempt}/{max_attempts})...")
        started = time.perf_counter()
        try:
            result = await executor.execute(config, system_prompt, content, token, call_settings)
        except Exception as e:
            reporter.detach_token(token)
            elapsed = int((time.perf_counter() - started) * 1000)
            outcome = classify_failure(e, token, reporter)
            if outcome is AttemptOutcome.CANCELLED:
                logger.info(f"[{provider_id}] attempt {attempt}/{max_attempts} cancelled after {elapsed}ms")
                _stopped(reporter, "Translation cancelled.")
                if isinstance(e, OperationCancelled):
                    raise
                raise OperationCancelled() from e
            if outcome is AttemptOutcome.FATAL:
                logger.warning(f"[{provider_id}] attempt {attempt}/{max_attempts} failed fatally: {type(e).__name__}: {e}")
                reporter.log(f"{provider_id} failed: {e}")
                _stopped(reporter, f"Error: {e}")
                raise
            if attempt == max_attempts:
                logger.warning(f"[{provider_id}] giving up after {max_attempts} attempt(s): {type(e).__name__}: {e}")
                reporter.log(f"{provider_id} failed after {max_attempts} attempt(s): {e}")
                _stopped(reporter, f"Error: {e}")
                raise
            last_error = e
        else:
            reporter.detach_token(token)
            if token.cancelled or reporter.cancelled:
                # A response that raced a cancel request is discarded.
                _stopped(reporter, "Translation cancelled.")
                raise OperationCancelled()
            elapsed = int((time.perf_counter() - started) * 1000)
            logger.info(f"[{provider_id}] attempt {attempt}/{max_attempts} succeeded in {elapsed}ms")
            return result

        wait_ms = retry_wait_ms(last_error, interval_ms)
        logger.warning(
            f"[{provider_id}] attempt {attempt}/{max_attempts} failed ({type(last_error).__name__}: {last_error}); "
            f"retrying in {wait_ms / 1000:g}s"
        )
        reporter.log(f"Attempt {attempt}/{max_attempts} failed: {last_error}. Retrying in {wait_ms / 1000:g}s...")
        try:
            await cancellable_delay(wait_ms, reporter)
        except OperationCancelled:
            logger.info(f"[{provider_id}] cancelled while waiting to retry")
            _stopped(reporter, "Translation cancelled.")
            raise

    # max_attempts is always >= 1, so the loop has returned or raised.
    raise AssertionError("unreachable")
