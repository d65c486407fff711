# src/hookwatch/cli.py
"""
Command-line interface for hookwatch.

Commands:
    hookwatch serve   Run the dashboard server (HTTP + WebSocket)
    hookwatch tail    Print new events to stdout as they are captured
    hookwatch where   Print the path of today's events file
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import TextIO

from .config import HookWatchConfig, load_config
from .exceptions import ConfigError, HookWatchError
from .ingest.coordinator import events_file_for
from .logging_config import configure_logging, log_display
from .models import EventRecord
from .pipeline import EventPipeline

logger = logging.getLogger(__name__)


def format_event(record: EventRecord) -> str:
    """One-line human-readable rendering used by ``tail``."""
    return (
        f"#{record.id} {record.timestamp or '-'} "
        f"{record.agent_id} {record.hook_event_type or '?'}"
    )


# =============================================================================
# COMMANDS
# =============================================================================


def cmd_where(config: HookWatchConfig, out: TextIO | None = None) -> int:
    ingest = config.ingest
    path = events_file_for(ingest.base_dir_expanded, ingest.tzinfo, suffix=ingest.file_suffix)
    (out or sys.stdout).write(f"{path}\n")
    return 0


async def _tail(config: HookWatchConfig, as_json: bool, out: TextIO) -> None:
    def on_batch(records: list[EventRecord]) -> None:
        for record in records:
            out.write((json.dumps(record.to_dict()) if as_json else format_event(record)) + "\n")
        out.flush()

    pipeline = EventPipeline(config)
    await pipeline.start(on_batch=on_batch)
    log_display(logger, logging.INFO, "Tailing %s (Ctrl+C to stop)", pipeline.coordinator.current_file)
    try:
        await asyncio.Event().wait()
    finally:
        await pipeline.stop()


def cmd_tail(config: HookWatchConfig, as_json: bool = False, out: TextIO | None = None) -> int:
    try:
        asyncio.run(_tail(config, as_json, out or sys.stdout))
    except KeyboardInterrupt:
        log_display(logger, logging.INFO, "Shutting down...")
    except HookWatchError as e:
        logger.error(f"Tail failed: {e}")
        return 1
    return 0


def cmd_serve(config: HookWatchConfig, host: str | None, port: int | None) -> int:
    import uvicorn

    from .server import create_app

    host = host or config.server.host
    port = port or config.server.port
    log_display(logger, logging.INFO, "Serving on http://%s:%d", host, port)
    uvicorn.run(create_app(config), host=host, port=port, log_config=None)
    return 0


# =============================================================================
# MAIN CLI ENTRY POINT
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hookwatch",
        description="Live observability for AI coding-assistant hook events",
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--verbose", "-v",
        help="Log everything to the console",
        action="store_true",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the dashboard server")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", "-p", type=int, default=None, help="Bind port")

    tail_parser = subparsers.add_parser("tail", help="Print new events as they arrive")
    tail_parser.add_argument("--json", action="store_true", help="Print raw JSON lines")

    subparsers.add_parser("where", help="Print today's events file path")

    return parser


def main(args: list[str] | None = None) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 0

    try:
        config = load_config(config_file_path=parsed.config)
    except ConfigError as e:
        sys.stderr.write(f"Error: {e}\n")
        return 2

    log_config = dict(config.logging)
    if parsed.verbose:
        log_config["console_enabled"] = True
        log_config["console_level"] = "DEBUG"
    configure_logging(app_name=f"hookwatch-{parsed.command}", config=log_config)

    if parsed.command == "serve":
        return cmd_serve(config, parsed.host, parsed.port)
    elif parsed.command == "tail":
        return cmd_tail(config, as_json=parsed.json)
    elif parsed.command == "where":
        return cmd_where(config)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
