import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from ai_translator.errors import OperationCancelled, TranslatorError  # noqa: E402
from ai_translator.orchestrator.service import TranslationService  # noqa: E402
from ai_translator.progress import ConsoleReporter  # noqa: E402
from ai_translator.settings import settings  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Translate a markdown file with the configured LLM provider")
    parser.add_argument("path", help="Markdown file to translate")
    parser.add_argument("--language", default=None, help="Target language (default: TARGET_LANGUAGE)")
    parser.add_argument("--provider", default=None, help="Provider id (default: LLM_PROVIDER)")
    parser.add_argument("--output-dir", default=None, help="Where to write the result (default: OUTPUT_PATH)")
    return parser


async def run(args: argparse.Namespace) -> int:
    source = Path(args.path)
    try:
        text = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading file: {e}")
        return 1
    reporter = ConsoleReporter()
    service = TranslationService(settings)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, reporter.request_cancel)
    except NotImplementedError:
        pass  # Windows: Ctrl+C falls back to KeyboardInterrupt

    try:
        translated = await service.translate(text, reporter, target_language=args.language, provider_id=args.provider)
    except OperationCancelled:
        print("Translation cancelled.")
        return 130
    except TranslatorError as e:
        print(f"Error during translation: {e}")
        return 1

    out_dir = Path(args.output_dir or settings.output_path)
    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / f"{source.stem}.translated.md"
    target.write_text(translated, encoding="utf-8")
    print("Translation written to:", target)
    return 0


def main() -> int:
    logging.basicConfig(level=settings.log_level)
    return asyncio.run(run(build_parser().parse_args()))


if __name__ == "__main__":
    sys.exit(main())
