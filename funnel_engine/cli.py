"""Thin CLI router: dispatches to the console player and the MCP server."""
from __future__ import annotations

import logging
import sys

USAGE = """\
funnel - interpreter for JSON/YAML branching questionnaires

Usage:
  funnel play [schema]   Play a funnel in the terminal (default: FUNNEL_SCHEMA)
  funnel mcp-server      Start MCP Server (one in-memory session)
  funnel help            Show this message

Settings are read from FUNNEL_CONFIG (YAML) and FUNNEL_* environment variables.
"""


def cmd_play(schema: str | None) -> None:
    from funnel_engine.compiler import load_funnel
    from funnel_engine.config import load_config
    from funnel_engine.engine import Interpreter, MockResultsProvider
    from funnel_engine.errors import SchemaError
    from funnel_engine.render.console import run_console

    config = load_config()
    logging.basicConfig(level=config.log_level, format="%(levelname)s %(name)s: %(message)s")
    source = schema or config.schema
    if not source:
        print("Usage: funnel play <schema>  (or set FUNNEL_SCHEMA)", file=sys.stderr)
        sys.exit(1)

    try:
        funnel = load_funnel(source)
    except (OSError, SchemaError) as e:
        print(f"✗ Failed to load {source}: {e}", file=sys.stderr)
        sys.exit(1)

    interpreter = Interpreter(funnel, config=config)
    try:
        view = run_console(interpreter, MockResultsProvider(delay=config.results_delay))
    except (KeyboardInterrupt, EOFError):
        print()
        sys.exit(130)
    if view.status == "halted":
        sys.exit(1)


def main():
    args = sys.argv[1:]
    command = args[0] if args else None

    if command == "play":
        cmd_play(args[1] if len(args) > 1 else None)

    elif command == "mcp-server":
        from funnel_engine.integrations.mcp_server import run_server
        run_server()

    elif command in ("help", "--help", "-h", None):
        print(USAGE)

    else:
        print(f"Unknown command: {command}", file=sys.stderr)
        print(USAGE)
        sys.exit(1)
