"""What a renderer gets for the active step: a read-only view and intent callbacks."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from funnel_engine.engine.intents import Advance, Choose, Redirect, SubmitForm, Toggle
from funnel_engine.engine.paths import UNSET, get
from funnel_engine.types import (
    FormStep,
    LandingStep,
    MultiQuestionStep,
    SingleQuestionStep,
)

if TYPE_CHECKING:
    from funnel_engine.engine.interpreter import ActionResult, Interpreter
    from funnel_engine.types import Diagnostic, ExecutionState, Step


@dataclass
class Action:
    intent: str  # advance | choose | toggle | submit
    target: str | None = None
    option_id: str | None = None
    label: str = ""
    selected: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v not in (None, "", False)}


@dataclass
class StepView:
    step_id: str | None
    kind: str
    status: str
    step: Step | None = None
    scope: str | None = None
    variant: dict[str, Any] | None = None
    selection: list[str] = field(default_factory=list)
    outcome: dict[str, Any] | None = None
    diagnostic: Diagnostic | None = None
    field_errors: list[str] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)

    @property
    def config(self) -> dict[str, Any]:
        return self.step.config if self.step is not None else {}

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "step_id": self.step_id,
            "kind": self.kind,
            "status": self.status,
            "scope": self.scope,
            "config": copy.deepcopy(self.config),
            "actions": [a.to_dict() for a in self.actions],
        }
        if self.variant is not None:
            result["variant"] = self.variant
        if isinstance(self.step, MultiQuestionStep):
            result["selection"] = list(self.selection)
        if isinstance(self.step, FormStep):
            result["fields"] = [f.__dict__ for f in self.step.fields]
            if self.field_errors:
                result["field_errors"] = list(self.field_errors)
        if self.outcome is not None:
            result["outcome"] = self.outcome
        if self.diagnostic is not None:
            result["diagnostic"] = self.diagnostic.to_dict()
        return result


def _actions(state: ExecutionState, step: Step | None, variant: dict[str, Any] | None) -> list[Action]:
    if state.status != "running" or step is None:
        return []

    match step:
        case LandingStep():
            cta = (variant or {}).get("cta") or {}
            return [Action("advance", target=step.next, label=cta.get("label") or "Start")]
        case SingleQuestionStep():
            return [
                Action("choose", target=opt.next or step.next, option_id=opt.id, label=opt.label)
                for opt in step.options
            ]
        case MultiQuestionStep():
            toggles = [
                Action("toggle", option_id=opt.id, label=opt.label, selected=opt.id in state.selection)
                for opt in step.options
            ]
            return [*toggles, Action("advance", target=step.next, label="Next")]
        case FormStep():
            return [Action("submit", target=step.target, label=step.config.get("cta") or "Next")]
        case _:
            return []


def build_view(state: ExecutionState, step: Step | None, scope: str | None = None) -> StepView:
    variant = None
    if isinstance(step, LandingStep) and state.current_step_id is not None:
        memo = get(state.context, "system.variant")
        if isinstance(memo, dict):
            variant = copy.deepcopy(memo.get(state.current_step_id))

    if state.status == "halted":
        kind = "diagnostic"
    elif step is None:
        kind = "done"
    else:
        kind = step.kind

    return StepView(
        step_id=state.current_step_id,
        kind=kind,
        status=state.status,
        step=step,
        scope=scope,
        variant=variant,
        selection=list(state.selection),
        outcome=state.outcome,
        diagnostic=state.diagnostic,
        field_errors=list(state.field_errors),
        actions=_actions(state, step, variant),
    )


class StepHandle:
    """Read access to the context plus callbacks that post intents.

    Renderers never touch the execution state directly.
    """

    def __init__(self, interpreter: Interpreter):
        self._interpreter = interpreter

    def read(self, path: str, default: Any = None) -> Any:
        value = get(self._interpreter.state.context, path)
        return default if value is UNSET else copy.deepcopy(value)

    def advance(self) -> ActionResult:
        return self._interpreter.dispatch(Advance())

    def choose(self, option_id: str) -> ActionResult:
        return self._interpreter.dispatch(Choose(option_id))

    def toggle(self, option_id: str) -> ActionResult:
        return self._interpreter.dispatch(Toggle(option_id))

    def submit(self, values: dict[str, Any]) -> ActionResult:
        return self._interpreter.dispatch(SubmitForm(dict(values)))

    def redirect(self, step_id: str) -> ActionResult:
        return self._interpreter.dispatch(Redirect(step_id))


