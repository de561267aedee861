"""Command-line interface for Salvage.

Subcommands:
- extract: run the extraction cascade on a file or stdin
- generate: ask the configured endpoint for a structured record
- server: serve the HTTP API with uvicorn

Records are printed to stdout as JSON; errors go to stderr with exit code 1.
Logs are written to files under SALVAGE_LOG_DIR, never to the console.
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from salvage.config import Settings, load_settings
from salvage.core.cascade import Cascade
from salvage.core.domain import CascadeExhaustedError, Schema
from salvage.core.responder import GenerationOptions, StructuredResponder
from salvage.llm.chat_completions import ChatCompletionsGenerator
from salvage.log import configure_logging

logger = logging.getLogger("salvage.cli")


def build_responder(settings: Settings) -> StructuredResponder:
    """Create a responder talking to the endpoint named in settings."""
    generator = ChatCompletionsGenerator(
        settings.llm_endpoint,
        settings.llm_model,
        api_key=settings.llm_api_key,
        timeout=settings.llm_timeout,
    )
    return StructuredResponder(generator)


def load_schema(path: str | None) -> Schema | None:
    """Load a schema descriptor from a JSON file.

    Args:
        path: File path, or None for no schema.

    Returns:
        The schema, or None.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a JSON object.
    """
    if path is None:
        return None
    try:
        schema = json.loads(Path(path).read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"schema file is not valid JSON: {path} ({e})") from e
    if not isinstance(schema, dict):
        raise ValueError(f"schema file must hold a JSON object: {path}")
    return schema


def _fail(message: str) -> None:
    logger.error(message)
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _read_text(path: str | None, label: str) -> str:
    if path is None:
        return sys.stdin.read()
    try:
        return Path(path).read_text()
    except FileNotFoundError:
        _fail(f"{label} not found: {path}")


def _schema_or_exit(path: str | None) -> Schema | None:
    try:
        return load_schema(path)
    except FileNotFoundError:
        _fail(f"schema file not found: {path}")
    except ValueError as e:
        _fail(str(e))


def _print_record(record: dict) -> None:
    print(json.dumps(record, indent=2, ensure_ascii=False))


def main() -> None:
    """Main entry point for the Salvage CLI.

    Commands:
        extract: Run the cascade on raw text.
            FILE: Path to the text (default: stdin)
            --schema: Path to a JSON schema descriptor
            --no-partial-recovery: Disable synthesized structure

        generate: Request a structured record from the configured endpoint.
            --prompt / --prompt-file: The prompt (one is required)
            --schema: Path to a JSON schema descriptor
            --temperature: Primary attempt temperature (default: 0.1)
            --max-tokens: Primary attempt token budget (default: 1500)
            --timeout: Seconds allowed per request (SALVAGE_LLM_TIMEOUT when omitted)
            --no-fallback: Skip the second, adjusted attempt

        server: Start the FastAPI server.
            --host: Host address to bind (default: 127.0.0.1)
            --port: Port number to bind (default: 8000)
            --reload: Enable auto-reload on code changes

    Raises:
        SystemExit: Exit code 1 for errors (missing files, invalid schema,
            invalid settings, exhausted extraction).

    Examples:
        salvage extract response.txt --schema schema.json
        cat response.txt | salvage extract
        salvage generate --prompt "Describe the mood" --schema schema.json
        salvage server --port 8080
    """
    parser = argparse.ArgumentParser(prog="salvage")
    subparsers = parser.add_subparsers(dest="command")

    extract_parser = subparsers.add_parser("extract")
    extract_parser.add_argument("file", nargs="?", default=None)
    extract_parser.add_argument("--schema", default=None)
    extract_parser.add_argument("--no-partial-recovery", action="store_true")

    generate_parser = subparsers.add_parser("generate")
    prompt_group = generate_parser.add_mutually_exclusive_group(required=True)
    prompt_group.add_argument("--prompt", default=None)
    prompt_group.add_argument("--prompt-file", default=None)
    generate_parser.add_argument("--schema", default=None)
    generate_parser.add_argument("--temperature", type=float, default=0.1)
    generate_parser.add_argument("--max-tokens", type=int, default=1500)
    generate_parser.add_argument("--timeout", type=float, default=None)
    generate_parser.add_argument("--no-fallback", action="store_true")

    server_parser = subparsers.add_parser("server")
    server_parser.add_argument("--host", default="127.0.0.1")
    server_parser.add_argument("--port", type=int, default=8000)
    server_parser.add_argument("--reload", action="store_true")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        settings = load_settings()
        configure_logging(settings.log_dir, settings.log_level)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    logger.debug(f"CLI args parsed: command={args.command}")

    if args.command == "extract":
        schema = _schema_or_exit(args.schema)
        text = _read_text(args.file, "input file")
        try:
            extraction = Cascade().run(text, schema, enable_partial_recovery=not args.no_partial_recovery)
        except CascadeExhaustedError as e:
            _fail(str(e))
        logger.info(f"Extracted with strategy {extraction.strategy_name}")
        _print_record(extraction.record)

    elif args.command == "generate":
        schema = _schema_or_exit(args.schema)
        prompt = args.prompt if args.prompt is not None else _read_text(args.prompt_file, "prompt file")
        options = GenerationOptions(
            temperature=args.temperature,
            max_tokens=args.max_tokens,
            timeout=args.timeout if args.timeout is not None else settings.llm_timeout,
            fallback_to_conversational=not args.no_fallback,
        )
        responder = build_responder(settings)
        record = asyncio.run(responder.generate_structured(prompt, schema, options))
        logger.info(f"Generation complete: {responder.telemetry.snapshot()}")
        _print_record(record)

    elif args.command == "server":
        import uvicorn

        uvicorn.run("salvage.server:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
