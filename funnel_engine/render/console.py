"""Play a funnel in the terminal."""
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from funnel_engine.engine.intents import Advance, Choose, SubmitForm, Toggle
from funnel_engine.types import FormStep

if TYPE_CHECKING:
    from collections.abc import Callable

    from funnel_engine.engine.intents import Intent
    from funnel_engine.engine.interpreter import Interpreter
    from funnel_engine.engine.results import ResultsProvider
    from funnel_engine.render.views import StepView


def _show(view: StepView, echo: Callable[[str], None]) -> None:
    cfg = view.config
    echo("")
    match view.kind:
        case "landing":
            variant = view.variant or {}
            echo(f"# {variant.get('headline', '')}")
            if variant.get("description"):
                echo(variant["description"])
            if variant.get("lowerTip"):
                echo(f"({variant['lowerTip']})")
        case "question_single" | "question_multi" | "form":
            echo(f"# {cfg.get('question', '')}")
            if cfg.get("tip"):
                echo(cfg["tip"])
        case "results":
            if view.outcome is None:
                echo(f"# {(cfg.get('loading') or {}).get('headline') or 'Loading…'}")
            else:
                echo(f"# {view.outcome.get('headline', 'Results')}")
                if view.outcome.get("body"):
                    echo(view.outcome["body"])
        case "end":
            echo(f"# {cfg.get('title') or 'Done'}")
            if cfg.get("body"):
                echo(cfg["body"])
        case "done":
            echo("# Done")
        case "diagnostic":
            diag = view.diagnostic
            echo(f"! {diag.message if diag else 'Unknown error'}")


def _prompt(view: StepView, ask: Callable[[str], str], echo: Callable[[str], None]) -> Intent:
    match view.kind:
        case "landing":
            ask(f"[{view.actions[0].label}] press Enter ")
            return Advance()
        case "question_single":
            for i, action in enumerate(view.actions, 1):
                echo(f"  {i}. {action.label}")
            choice = ask("Choose: ").strip()
            if choice.isdigit() and 0 < int(choice) <= len(view.actions):
                return Choose(view.actions[int(choice) - 1].option_id or "")
            return Choose(choice)
        case "question_multi":
            toggles = [a for a in view.actions if a.intent == "toggle"]
            for i, action in enumerate(toggles, 1):
                mark = "x" if action.selected else " "
                echo(f"  [{mark}] {i}. {action.label}")
            choice = ask("Toggle a number, or Enter for Next: ").strip()
            if not choice:
                return Advance()
            if choice.isdigit() and 0 < int(choice) <= len(toggles):
                return Toggle(toggles[int(choice) - 1].option_id or "")
            return Toggle(choice)
        case "form":
            step = view.step
            values: dict[str, str] = {}
            if isinstance(step, FormStep):
                for f in step.fields:
                    suffix = " *" if f.required else ""
                    values[f.id] = ask(f"{f.label}{suffix}: ")
            return SubmitForm(values)
    raise ValueError(f"No prompt for step kind {view.kind!r}")


def run_console(
    interpreter: Interpreter,
    provider: ResultsProvider,
    *,
    ask: Callable[[str], str] = input,
    echo: Callable[[str], None] = print,
) -> StepView:
    """Drive the interpreter until the session is done or halted."""
    interpreter.start()
    while True:
        view = interpreter.view()
        _show(view, echo)
        if view.status == "loading":
            asyncio.run(interpreter.fetch_results(provider))
            continue
        if view.status in ("done", "halted"):
            return view
        result = interpreter.dispatch(_prompt(view, ask, echo))
        if not result:
            echo(f"! {result.message}")
