import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import ConfigurationError, TranslatorBusyError, TranslatorError
from ..progress import ProgressReporter
from ..settings import Settings
from . import prompts
from .registry import get_provider
from .runner import call_with_retry

logger = logging.getLogger(__name__)


@dataclass
class ConnectionResult:
    success: bool
    message: str


class TranslationService:
    """Entry point for hosts: one translation at a time, any reporter surface."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.busy = False

    async def translate(
        self,
        text: str,
        reporter: ProgressReporter,
        *,
        target_language: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> str:
        if self.busy:
            raise TranslatorBusyError("A translation is already in progress.")
        if not (text or "").strip():
            raise ConfigurationError("Nothing to translate: the document is empty.")

        self.busy = True
        try:
            reporter.clear_display()
            provider_id = provider_id or self.settings.llm_provider
            spec = get_provider(provider_id)
            config = self.settings.provider_config(spec.provider_id)
            call_settings = self.settings.call_settings(target_language)

            reporter.log(f"Translating to {call_settings.target_language} with {spec.label} ({config.model}).")
            reporter.update_status("Starting...", 0)
            logger.info(f"Translating {len(text)} chars via {spec.provider_id}:{config.model} -> {call_settings.target_language}")

            result = await call_with_retry(
                provider_id=spec.provider_id,
                config=config,
                system_prompt=prompts.translation_system(call_settings.target_language),
                content=text,
                call_settings=call_settings,
                reporter=reporter,
                executor=spec.executor,
            )
            reporter.update_status("Translation complete.", 100)
            reporter.log("Translation complete.")
            return result
        finally:
            self.busy = False

    async def check_connection(self, provider_id: Optional[str] = None) -> ConnectionResult:
        provider_id = provider_id or self.settings.llm_provider
        try:
            spec = get_provider(provider_id)
            config = self.settings.provider_config(spec.provider_id)
            message = await spec.executor.check_connection(config, timeout=self.settings.request_timeout_seconds)
        except TranslatorError as e:
            logger.warning(f"Connection test failed for {provider_id}: {e}")
            return ConnectionResult(success=False, message=f"Connection failed: {e}")
        return ConnectionResult(success=True, message=message)
