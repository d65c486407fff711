# src/hookwatch/hooks/capture.py
"""
Capture hook: append every assistant hook event to today's JSONL file.

Configured as the command for every hook type, e.g.::

    hookwatch-capture --event-type PreToolUse

The hook payload arrives as JSON on stdin and is written, wrapped, as one
line of ``<base_dir>/history/raw-outputs/YYYY-MM/YYYY-MM-DD_all-events.jsonl``.

The hook must never get in the assistant's way: every failure is logged and
the process still exits 0.

Agent attribution:
    Events are labelled with the agent that produced them (``source_app``).
    The agent for a session is remembered in ``<base_dir>/agent-sessions.json``
    and updated, in priority order, when:

    1. a ``Task`` tool call launches a subagent (``tool_input.subagent_type``),
    2. a ``Stop``/``SubagentStop`` event hands control back to the default agent,
    3. ``HOOKWATCH_AGENT`` is set in the environment,
    4. the payload carries ``agent_type``,
    5. the working directory is under ``/agents/<name>/``.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import re
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

from ..config import HookWatchConfig, load_config
from ..exceptions import ConfigError
from ..ingest.coordinator import events_file_for
from ..logging_config import configure_logging, log_display

logger = logging.getLogger(__name__)

DEFAULT_AGENT = "kai"
DEFAULT_SESSION = "main"
ENV_AGENT = "HOOKWATCH_AGENT"
SESSION_MAP_FILENAME = "agent-sessions.json"
RESET_EVENT_TYPES = frozenset({"Stop", "SubagentStop"})

_AGENT_DIR_RE = re.compile(r"/agents/([^/]+)")


# =============================================================================
# SESSION -> AGENT MAPPING
# =============================================================================


def session_map_path(base_dir: str | Path) -> Path:
    return Path(base_dir).expanduser() / SESSION_MAP_FILENAME


def load_session_map(path: Path) -> dict[str, str]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable session map {path}: {e}")
        return {}
    return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}


def save_session_map(path: Path, mapping: Mapping[str, str]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(dict(mapping), indent=2), encoding="utf-8")
    except OSError as e:
        logger.warning(f"Could not save session map {path}: {e}")


def session_key(hook_data: Mapping[str, Any]) -> str:
    """Session id as a string; hooks occasionally send numbers or objects."""
    session_id = hook_data.get("session_id")
    return str(session_id) if session_id else DEFAULT_SESSION


def resolve_agent(
    hook_data: Mapping[str, Any],
    event_type: str,
    known_agent: str | None,
    environ: Mapping[str, str],
) -> tuple[str, bool]:
    """
    Work out which agent produced this event.

    Returns:
        ``(agent_name, remember)`` where ``remember`` says whether the
        session mapping should be updated with ``agent_name``.
    """
    tool_input = hook_data.get("tool_input")
    if hook_data.get("tool_name") == "Task" and isinstance(tool_input, Mapping):
        subagent = tool_input.get("subagent_type")
        if subagent:
            return str(subagent), True

    if event_type in RESET_EVENT_TYPES:
        return DEFAULT_AGENT, True

    if environ.get(ENV_AGENT):
        return environ[ENV_AGENT], True

    if hook_data.get("agent_type"):
        return str(hook_data["agent_type"]), True

    cwd = hook_data.get("cwd")
    if isinstance(cwd, str):
        match = _AGENT_DIR_RE.search(cwd)
        if match:
            return match.group(1), True

    return known_agent or DEFAULT_AGENT, False


# =============================================================================
# EVENT WRITING
# =============================================================================


def build_event(
    hook_data: Mapping[str, Any],
    event_type: str,
    agent: str,
    now: datetime,
    tz: ZoneInfo,
) -> dict[str, Any]:
    """The JSON object written for one hook invocation."""
    return {
        "source_app": agent,
        "session_id": session_key(hook_data),
        "hook_event_type": event_type,
        "payload": dict(hook_data),
        "timestamp": int(now.timestamp() * 1000),
        "timestamp_local": now.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S %Z"),
    }


def append_event(path: Path, event: Mapping[str, Any]) -> None:
    """Append ``event`` as a single newline-terminated JSON line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(event, ensure_ascii=False, default=str) + "\n"
    with path.open("a", encoding="utf-8") as f:
        f.write(line)


def capture(
    event_type: str,
    raw_input: str,
    config: HookWatchConfig,
    environ: Mapping[str, str] | None = None,
    now: datetime | None = None,
) -> Path | None:
    """
    Record one hook invocation.

    Returns:
        The file written to, or None if the input could not be used.
    """
    environ = os.environ if environ is None else environ
    now = now or datetime.now(tz=UTC)

    try:
        hook_data = json.loads(raw_input) if raw_input.strip() else {}
    except ValueError as e:
        log_display(logger, logging.ERROR, "Event capture error: invalid hook JSON (%s)", e)
        return None
    if not isinstance(hook_data, dict):
        log_display(logger, logging.ERROR, "Event capture error: hook input is not a JSON object")
        return None

    ingest = config.ingest
    session_id = session_key(hook_data)
    map_path = session_map_path(ingest.base_dir_expanded)
    mapping = load_session_map(map_path)

    agent, remember = resolve_agent(hook_data, event_type, mapping.get(session_id), environ)
    if remember and mapping.get(session_id) != agent:
        mapping[session_id] = agent
        save_session_map(map_path, mapping)

    event = build_event(hook_data, event_type, agent, now, ingest.tzinfo)
    path = events_file_for(ingest.base_dir_expanded, ingest.tzinfo, now, ingest.file_suffix)
    append_event(path, event)
    logger.debug(f"Captured {event_type} for {agent} into {path}")
    return path


# =============================================================================
# ENTRY POINT
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hookwatch-capture",
        description="Append an assistant hook event (JSON on stdin) to today's events file",
    )
    parser.add_argument(
        "--event-type",
        default=None,
        help="Hook event type, e.g. PreToolUse, Stop, SessionStart",
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
        default=None,
    )
    return parser


def main(args: list[str] | None = None) -> int:
    """Always returns 0 so the assistant is never blocked."""
    parsed, _unknown = create_parser().parse_known_args(args)
    if not parsed.event_type:
        sys.stderr.write("Missing --event-type argument\n")
        return 0

    try:
        config = load_config(config_file_path=parsed.config)
    except ConfigError as e:
        sys.stderr.write(f"Event capture error: {e}\n")
        config = load_config()

    configure_logging(app_name="hookwatch-capture", config=config.logging)

    try:
        capture(parsed.event_type, sys.stdin.read(), config)
    except Exception as e:
        log_display(logger, logging.ERROR, "Event capture error: %s", e)
        logger.debug("Capture failure details", exc_info=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
