"""Shared fixtures for funnel-engine scenario tests."""
from __future__ import annotations

import asyncio
import random
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from funnel_engine.compiler import load_funnel, parse_funnel
from funnel_engine.config import FunnelConfig
from funnel_engine.engine.interpreter import ActionResult, Interpreter
from funnel_engine.engine.results import MockResultsProvider

if TYPE_CHECKING:
    from funnel_engine.render.views import StepHandle, StepView

FUNNELS_DIR = Path(__file__).parent / "funnels"


class FunnelHarness:
    """Test harness for driving a funnel through the interpreter.

    Accepts a file name under tests/funnels/ or an inline mapping. Every
    rendered view is recorded so tests can assert on what a renderer saw.
    """

    def __init__(
        self,
        funnel: str | dict[str, Any],
        *,
        seed: int | None = 7,
        config: FunnelConfig | None = None,
        renderers: dict | None = None,
    ):
        if isinstance(funnel, str):
            self.funnel = load_funnel(FUNNELS_DIR / funnel)
        else:
            self.funnel = parse_funnel(funnel)
        self.rendered: list[StepView] = []
        self.interpreter = Interpreter(
            self.funnel,
            renderers=renderers if renderers is not None else {"*": self._record_view},
            config=config or FunnelConfig(results_delay=0),
            rng=random.Random(seed),
        )

    def _record_view(self, view: StepView, handle: StepHandle) -> None:
        self.rendered.append(view)

    def start(self) -> ActionResult:
        return self.interpreter.start()

    @property
    def state(self):
        return self.interpreter.state

    @property
    def step(self) -> str | None:
        return self.state.current_step_id

    @property
    def status(self) -> str:
        return self.state.status

    @property
    def context(self) -> dict[str, Any]:
        return self.state.context

    @property
    def stack(self) -> list[str]:
        return [frame.flow_id for frame in self.state.flow_stack]

    def advance(self) -> ActionResult:
        return self.interpreter.advance()

    def choose(self, option_id: str) -> ActionResult:
        return self.interpreter.choose(option_id)

    def toggle(self, option_id: str) -> ActionResult:
        return self.interpreter.toggle(option_id)

    def submit(self, **values: Any) -> ActionResult:
        return self.interpreter.submit_form(values)

    def redirect(self, step_id: str) -> ActionResult:
        return self.interpreter.redirect(step_id)

    def restart(self) -> ActionResult:
        return self.interpreter.restart()

    def fetch_results(self, provider: MockResultsProvider | None = None) -> ActionResult:
        return asyncio.run(self.interpreter.fetch_results(provider or MockResultsProvider(delay=0)))

    def get_status(self) -> dict:
        return self.interpreter.get_status()

    def get_history(self, limit: int = 50) -> list[dict]:
        return self.interpreter.get_history(limit)

    def actions(self) -> list[str]:
        return [a.option_id or a.intent for a in self.interpreter.view().actions]


@pytest.fixture
def harness_factory():
    """Factory fixture that creates FunnelHarness instances."""

    def _make(funnel: str | dict[str, Any], **kwargs) -> FunnelHarness:
        return FunnelHarness(funnel, **kwargs)

    return _make

