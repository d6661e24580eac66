#!/usr/bin/env python3
"""EdBrief: daily EdTech digest built from recent web articles.

This CLI searches for recent education-technology articles, extracts their
text with a headless browser, asks a generative model for an eight-point
source-attributed digest, and delivers it through a messaging template.

Commands:
    run         Execute one digest run
    status      Show configuration and database statistics
    show        Print the stored digest message
    check       Verify that the configured model providers respond

Examples:
    python main.py run                         # Single run
    python main.py run --query "AI tutoring"   # Custom search query
    python main.py run --no-send               # Store the digest only
    python main.py show
    python main.py check

Environment:
    GEMINI_API_KEY, GOOGLE_API_KEY, GOOGLE_CSE_ID, DB_PATH: Required
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys

from config import Config
from database import Database
from observability.logging import setup_logging

logger = logging.getLogger(__name__)

CHECK_PROMPT = "Reply with the single word: ready"


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Execute one digest run.

    Returns:
        Exit code (0 success, 1 pipeline failure, 130 interrupted)
    """
    from pipeline import PipelineError, run_once

    if args.query:
        config.search_query = args.query
    if args.count:
        config.search_count = args.count
    if args.days:
        config.search_days = args.days
    if args.no_send:
        config.template_webhook_url = ""

    try:
        stats = asyncio.run(run_once(config))
        logger.info("Run complete | stats=%s", json.dumps(stats))
        return 0
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130  # Standard exit code for SIGINT
    except PipelineError as e:
        logger.error("Pipeline failed | error=%s", e)
        return 1
    except Exception as e:
        logger.error("Pipeline failed | error=%s type=%s", e, type(e).__name__, exc_info=True)
        return 1


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration and database statistics."""
    with Database(config.db_path, seen_capacity=config.seen_capacity) as db:
        db_stats = db.stats()
        message = db.get_message(config.message_type)

    status = {
        "config": {
            "primary_model": config.primary_model,
            "secondary_model": config.secondary_model or None,
            "search_query": config.search_query,
            "search_count": config.search_count,
            "search_days": config.search_days,
            "scrape_concurrency": config.scrape_concurrency,
            "delivery": bool(config.template_webhook_url),
            "enable_logfire": config.enable_logfire,
        },
        "database": {
            "path": str(config.db_path),
            "seen_sources": db_stats["seen"],
            "seen_capacity": db_stats["seen_capacity"],
            "messages": db_stats["messages"],
            "last_status": message["status"] if message else None,
        },
    }

    print(json.dumps(status, indent=2))
    return 0


def cmd_show(args: argparse.Namespace, config: Config) -> int:
    """Print the stored digest message."""
    with Database(config.db_path, seen_capacity=config.seen_capacity) as db:
        message = db.get_message(config.message_type)

    if message is None:
        print(f"No stored message of type '{config.message_type}'", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(message, indent=2, ensure_ascii=False))
        return 0

    meta = message["metadata"]
    print(f"Status: {message['status']}  Date: {meta.get('date', '-')}  Articles: {meta.get('article_count', '-')}")
    print()
    print(message["content"])
    return 0


def cmd_check(args: argparse.Namespace, config: Config) -> int:
    """Send a short prompt to each configured provider.

    Returns:
        Exit code (0 if every provider answered)
    """
    from agents.summarizer import AgentProvider

    models = [config.primary_model]
    if config.secondary_model:
        models.append(config.secondary_model)

    async def ping(model: str) -> tuple[str, str | None]:
        try:
            text = await AgentProvider(model).generate(CHECK_PROMPT)
        except Exception as e:
            return model, f"{type(e).__name__}: {e}"
        if not text.strip():
            return model, "empty response"
        return model, None

    async def ping_all() -> list[tuple[str, str | None]]:
        return await asyncio.gather(*[ping(m) for m in models])

    failures = 0
    for model, error in asyncio.run(ping_all()):
        if error:
            failures += 1
            print(f"FAIL  {model}  {error}")
        else:
            print(f"OK    {model}")
    return 1 if failures else 0


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="EdBrief: daily EdTech digest pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the digest pipeline once")
    run_parser.add_argument("--query", help="Override SEARCH_QUERY")
    run_parser.add_argument("--count", type=int, help="Override SEARCH_COUNT")
    run_parser.add_argument("--days", type=int, help="Override SEARCH_DAYS")
    run_parser.add_argument(
        "--no-send",
        action="store_true",
        help="Store the digest without delivering it",
    )

    subparsers.add_parser("status", help="Show configuration and statistics")

    show_parser = subparsers.add_parser("show", help="Print the stored digest message")
    show_parser.add_argument("--json", action="store_true", help="Print the full record as JSON")

    subparsers.add_parser("check", help="Check model provider connectivity")

    args = parser.parse_args()

    try:
        config = Config.load()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config, verbose=args.verbose)

    if args.command == "run":
        error = config.validate()
    elif args.command == "check":
        error = config.validate_providers()
    else:
        error = None
    if error:
        print(f"Configuration error: {error}", file=sys.stderr)
        return 1

    commands = {
        "run": cmd_run,
        "status": cmd_status,
        "show": cmd_show,
        "check": cmd_check,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except KeyboardInterrupt:
            return 130
        except Exception as e:
            logger.error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
