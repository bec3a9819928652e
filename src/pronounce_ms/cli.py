"""
Command-Line Interface for pronounce-ms.

Runs the HTTP server and offers a few offline helpers that need no
running service.

Usage Examples:
    # Start the server with configured host/port
    pronounce-ms serve
    pronounce-ms serve --port 3100 --reload

    # Print the cache key and upstream locator for a text
    pronounce-ms key 你好
    pronounce-ms key 你好 --language zh-TW --json

    # Check whether a text would be accepted by /audio (exit 0 or 2)
    pronounce-ms check hello

Environment Variables:
    PRONOUNCE_MS_SETTINGS: Settings file (default config/settings.yaml)
    PRONOUNCE_MS_HOST / PRONOUNCE_MS_PORT: Server address overrides
"""

from __future__ import annotations

import argparse
import json
from typing import List, Optional

from pronounce_ms.api.dependencies import get_settings
from pronounce_ms.audio.keys import derive_key
from pronounce_ms.audio.resolver import TranslateTTSResolver
from pronounce_ms.core.errors import ValidationError
from pronounce_ms.core.logging import configure_logging, get_logger, info
from pronounce_ms.services.validators import validate_language, validate_text

EXIT_OK = 0
EXIT_INVALID = 2


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pronounce-ms", description="pronounce-ms CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", help="Bind address override")
    serve.add_argument("--port", type=int, help="Port override")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    key = sub.add_parser("key", help="Print cache key and audio locator for a text")
    key.add_argument("text", help="Chinese text")
    key.add_argument("--language", help="Language code (default from settings)")
    key.add_argument("--json", action="store_true", help="Print JSON")

    check = sub.add_parser("check", help="Validate a text the way /audio does")
    check.add_argument("text", help="Text to check")
    check.add_argument("--language", help="Language code (default from settings)")

    return parser.parse_args(argv)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    host = args.host or settings.host
    port = args.port or settings.port
    info(get_logger("pronounce-ms.cli"), "serve", host=host, port=port)
    uvicorn.run("pronounce_ms.main:app", host=host, port=port, reload=args.reload)
    return EXIT_OK


def _key(args: argparse.Namespace) -> int:
    config = get_settings().get_service_config()
    try:
        text = validate_text(args.text, config.text.max_chars)
        language = validate_language(args.language, config.languages.supported, config.languages.default)
    except ValidationError as e:
        print(f"invalid: {e.reason}: {e.message}")
        return EXIT_INVALID

    cache_key = derive_key(text, language)
    locator = TranslateTTSResolver.from_config(config.resolver).resolve(text, language)
    if args.json:
        print(json.dumps({
            "text": text,
            "language": language,
            "cacheKey": cache_key,
            "audioReference": f"/play/{cache_key}",
            "locator": locator,
        }, ensure_ascii=False))
    else:
        print(f"key:     {cache_key}")
        print(f"play:    /play/{cache_key}")
        print(f"locator: {locator}")
    return EXIT_OK


def _check(args: argparse.Namespace) -> int:
    config = get_settings().get_service_config()
    try:
        validate_text(args.text, config.text.max_chars)
        validate_language(args.language, config.languages.supported, config.languages.default)
    except ValidationError as e:
        print(f"INVALID {e.reason}: {e.message}")
        return EXIT_INVALID
    print("VALID")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 success, 2 rejected input).
    """
    args = _parse_args(argv)
    configure_logging()

    if args.command == "serve":
        return _serve(args)
    if args.command == "key":
        return _key(args)
    return _check(args)


if __name__ == "__main__":
    raise SystemExit(main())
