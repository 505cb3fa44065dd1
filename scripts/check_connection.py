import asyncio
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from ai_translator.orchestrator.service import TranslationService  # noqa: E402
from ai_translator.settings import settings  # noqa: E402

logging.basicConfig(level=settings.log_level)

provider = sys.argv[1] if len(sys.argv) > 1 else settings.llm_provider
print("Testing connection to:", provider)

result = asyncio.run(TranslationService(settings).check_connection(provider))
print(result.message)
sys.exit(0 if result.success else 1)
