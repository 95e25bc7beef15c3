"""MCP Server: exposes funnel_* tools over one in-memory session."""
from __future__ import annotations

import json

from mcp.server.fastmcp import FastMCP

from funnel_engine.compiler import load_funnel
from funnel_engine.config import load_config
from funnel_engine.engine import Interpreter, MockResultsProvider
from funnel_engine.engine.paths import UNSET, get

mcp = FastMCP("funnel-engine")

_session: Interpreter | None = None


def _get_interpreter() -> Interpreter:
    global _session
    if _session is None:
        config = load_config()
        if not config.schema:
            raise RuntimeError("No funnel loaded. Call funnel_load or set FUNNEL_SCHEMA.")
        _session = Interpreter(load_funnel(config.schema), config=config)
        _session.start()
    return _session


def _reply(message: str, interpreter: Interpreter) -> str:
    view = interpreter.view()
    return json.dumps({
        "message": message,
        "view": view.to_dict(),
        "reminder": interpreter.get_status()["summary"],
    }, ensure_ascii=False, indent=2, default=str)


@mcp.tool()
def funnel_load(source: str) -> str:
    """Load a funnel (file path or URL) and start a fresh session."""
    global _session
    try:
        config = load_config()
        _session = Interpreter(load_funnel(source), config=config)
        return _reply(_session.start().message, _session)
    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


@mcp.tool()
def funnel_get_status() -> str:
    """Get the current step, scope, status and allowed actions."""
    try:
        interpreter = _get_interpreter()
        st = interpreter.get_status()
        st["view"] = interpreter.view().to_dict()
        return json.dumps(st, ensure_ascii=False, indent=2, default=str)
    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


@mcp.tool()
def funnel_get_context(path: str | None = None) -> str:
    """Get the session context, optionally narrowed to a dotted path."""
    try:
        context = _get_interpreter().state.context
        if path:
            value = get(context, path)
            result = {path: None if value is UNSET else value}
        else:
            result = context
        return json.dumps({"context": result}, ensure_ascii=False, indent=2, default=str)
    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


@mcp.tool()
def funnel_get_history(limit: int = 20) -> str:
    """Get the session's transition history, newest first."""
    try:
        return json.dumps(_get_interpreter().get_history(limit), ensure_ascii=False, indent=2)
    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


@mcp.tool()
def funnel_advance() -> str:
    """Press the landing CTA, or "Next" on a multi-select question."""
    try:
        interpreter = _get_interpreter()
        return _reply(interpreter.advance().message, interpreter)
    except Exception as e:
        return f"Advance failed: {e}"


@mcp.tool()
def funnel_choose(option_id: str) -> str:
    """Pick an option on a single-choice question."""
    try:
        interpreter = _get_interpreter()
        return _reply(interpreter.choose(option_id).message, interpreter)
    except Exception as e:
        return f"Choose failed: {e}"


@mcp.tool()
def funnel_toggle(option_id: str) -> str:
    """Toggle an option on a multi-select question."""
    try:
        interpreter = _get_interpreter()
        return _reply(interpreter.toggle(option_id).message, interpreter)
    except Exception as e:
        return f"Toggle failed: {e}"


@mcp.tool()
def funnel_submit_form(values: dict) -> str:
    """Submit form field values keyed by field id."""
    try:
        interpreter = _get_interpreter()
        return _reply(interpreter.submit_form(values).message, interpreter)
    except Exception as e:
        return f"Submit failed: {e}"


@mcp.tool()
def funnel_goto(step_id: str) -> str:
    """Redirect the session to a step in the current scope."""
    try:
        interpreter = _get_interpreter()
        return _reply(interpreter.redirect(step_id).message, interpreter)
    except Exception as e:
        return f"Goto failed: {e}"


@mcp.tool()
def funnel_restart() -> str:
    """Start the funnel over with an empty context."""
    try:
        interpreter = _get_interpreter()
        return _reply(interpreter.restart().message, interpreter)
    except Exception as e:
        return f"Restart failed: {e}"


@mcp.tool()
async def funnel_fetch_results() -> str:
    """Compute results for an active results step."""
    try:
        interpreter = _get_interpreter()
        provider = MockResultsProvider(delay=interpreter.config.results_delay)
        result = await interpreter.fetch_results(provider)
        return _reply(result.message, interpreter)
    except Exception as e:
        return f"Fetch results failed: {e}"


def run_server():
    mcp.run(transport="stdio")
