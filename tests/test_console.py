"""Terminal player driven by scripted input."""
from __future__ import annotations

from funnel_engine.engine.results import MockResultsProvider
from funnel_engine.render.console import run_console


def _script(*answers: str):
    queue = list(answers)
    prompts: list[str] = []

    def ask(prompt: str) -> str:
        prompts.append(prompt)
        return queue.pop(0)

    return ask, prompts


def test_console_plays_solar_funnel_to_results(harness_factory):
    h = harness_factory("solar.yaml", seed=2)
    ask, prompts = _script(
        "",            # landing CTA
        "1",           # owner: Yes
        "2",           # roof: Pitched
        "2",           # toggle Battery
        "",            # Next
        "Ada", "ada@example.com", "",  # contact form
    )
    lines: list[str] = []
    view = run_console(h.interpreter, MockResultsProvider(delay=0), ask=ask, echo=lines.append)

    assert view.status == "done"
    assert view.kind == "results"
    assert "# Crunching the numbers…" in lines
    assert "# Your best matches" in lines
    assert "Name *: " in prompts
    assert h.context["answers"]["features"] == ["panels", "battery"]


def test_console_reports_rejected_input_and_retries(harness_factory):
    h = harness_factory("color.yaml")
    ask, _ = _script("", "9", "Blue?", "b")
    lines: list[str] = []
    view = run_console(h.interpreter, MockResultsProvider(delay=0), ask=ask, echo=lines.append)
    assert view.step_id == "end1"
    assert any(line.startswith('! Option "9" not found') for line in lines)
    assert "# Blue it is" in lines


def test_console_stops_on_halt(harness_factory):
    h = harness_factory({"start": "v", "steps": {"v": {"type": "video"}}})
    lines: list[str] = []
    view = run_console(h.interpreter, MockResultsProvider(delay=0), ask=lambda p: "", echo=lines.append)
    assert view.status == "halted"
    assert lines[-1] == '! Unsupported step type "video" at step "v"'
