"""Funnel interpreter: the single writer of a session's execution state.

Intents (advance, choose, toggle, submit, redirect, results) are queued
and applied one at a time. Each applied intent may chain through any
number of pass-through steps (router, flow_ref) before settling on a step
that waits for input, loads results, or ends the session.
"""
from __future__ import annotations

import copy
import json
import logging
import random
from collections import deque
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from funnel_engine.config import FunnelConfig
from funnel_engine.engine import paths
from funnel_engine.engine.conditions import evaluate
from funnel_engine.engine.intents import (
    Advance,
    Choose,
    Redirect,
    ResultsReady,
    ResultsTicket,
    SubmitForm,
    Toggle,
)
from funnel_engine.engine.resolver import Resolver
from funnel_engine.errors import (
    FunnelError,
    UnknownFlow,
    UnresolvedStep,
    UnsupportedStepKind,
    ValidationFailure,
)
from funnel_engine.render import views
from funnel_engine.types import (
    DONE_STEP,
    END_SENTINEL,
    Diagnostic,
    EndStep,
    ExecutionState,
    FlowRefStep,
    FormStep,
    LandingStep,
    MultiQuestionStep,
    ResultsStep,
    RouterStep,
    SingleQuestionStep,
    UnsupportedStep,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from funnel_engine.engine.intents import Intent
    from funnel_engine.engine.results import ResultsProvider
    from funnel_engine.render.views import StepHandle, StepView
    from funnel_engine.types import FunnelDefinition, Step

    Renderer = Callable[[StepView, StepHandle], None]

logger = logging.getLogger("funnel_engine.engine")

# ─── Result type ───

class ActionResult:
    def __init__(
        self,
        success: bool,
        message: str,
        new_step: str | None = None,
        error: FunnelError | None = None,
    ):
        self.success = success
        self.message = message
        self.new_step = new_step
        self.error = error

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        return f"ActionResult(success={self.success!r}, message={self.message!r}, new_step={self.new_step!r})"

    def to_dict(self) -> dict:
        result = {"success": self.success, "message": self.message, "new_step": self.new_step}
        if self.error is not None:
            result["error"] = type(self.error).__name__
        return result

# ─── Interpreter ───

class Interpreter:
    def __init__(
        self,
        funnel: FunnelDefinition,
        *,
        renderers: Mapping[str, Renderer] | None = None,
        config: FunnelConfig | None = None,
        rng: random.Random | None = None,
    ):
        self.funnel = funnel
        self.config = config or FunnelConfig()
        self.renderers: dict[str, Renderer] = dict(renderers or {})
        self.rng = rng or random.Random(self.config.seed)
        self.state = self._new_state()
        self.resolver = Resolver(funnel, self.state)
        self.handle = views.StepHandle(self)
        self._queue: deque[Intent] = deque()
        self._draining = False
        self._started = False

    # ─── Session lifecycle ───

    def start(self) -> ActionResult:
        """Activate the funnel's start step. Idempotent."""
        if self._started:
            return ActionResult(True, f"Already started, current step: {self.state.current_step_id}",
                                self.state.current_step_id)
        self._started = True
        self._record(self.state.current_step_id, "start")
        result = self._exclusive(lambda: self._go(self.funnel.start))
        if result:
            result.message = f'Funnel "{self.funnel.name}" started → {result.message}'
        return result

    def restart(self) -> ActionResult:
        """Throw away the session and start over with a fresh context."""
        if self._draining:
            return ActionResult(False, "Cannot restart while an intent is being applied.", self.state.current_step_id)
        self._queue.clear()
        old_epoch = self.state.epoch
        self.state = self._new_state()
        # epochs keep counting so tickets from the old session never match
        self.state.epoch = old_epoch + 1
        self.resolver = Resolver(self.funnel, self.state)
        self._started = False
        return self.start()

    # ─── Intents ───

    def post(self, intent: Intent) -> None:
        self._queue.append(intent)

    def dispatch(self, intent: Intent) -> ActionResult:
        """Queue an intent and apply everything pending.

        Called re-entrantly (from a renderer while an intent is being
        applied), the intent is only queued; it runs after the current one.
        """
        self.post(intent)
        if self._draining:
            return ActionResult(True, f"Queued {type(intent).__name__}", self.state.current_step_id)
        return self.drain()

    def drain(self) -> ActionResult:
        return self._exclusive(lambda: ActionResult(True, "Nothing to do", self.state.current_step_id))

    def _exclusive(self, first: Callable[[], ActionResult]) -> ActionResult:
        """Run ``first`` then every queued intent, with re-entrant dispatch deferred."""
        self._draining = True
        try:
            result = first()
            while self._queue:
                result = self._apply(self._queue.popleft())
        finally:
            self._draining = False
        return result

    def advance(self) -> ActionResult:
        return self.dispatch(Advance())

    def choose(self, option_id: str) -> ActionResult:
        return self.dispatch(Choose(option_id))

    def toggle(self, option_id: str) -> ActionResult:
        return self.dispatch(Toggle(option_id))

    def submit_form(self, values: Mapping[str, Any]) -> ActionResult:
        return self.dispatch(SubmitForm(dict(values)))

    def redirect(self, step_id: str) -> ActionResult:
        return self.dispatch(Redirect(step_id))

    # ─── Results collaborator ───

    @property
    def results_ticket(self) -> ResultsTicket | None:
        if self.state.status != "loading":
            return None
        return ResultsTicket(self.state.current_step_id, self.state.epoch)

    async def fetch_results(self, provider: ResultsProvider) -> ActionResult:
        ticket = self.results_ticket
        if ticket is None:
            return ActionResult(False, "No results step is loading.")
        outcome = await provider.fetch(copy.deepcopy(self.state.context))
        return self.dispatch(ResultsReady(ticket, outcome))

    # ─── Queries ───

    def current_step(self) -> Step | None:
        if self.state.status == "halted":
            return None
        try:
            return self.resolver.resolve(self.state.current_step_id)
        except UnresolvedStep:
            return None

    def view(self) -> StepView:
        return views.build_view(self.state, self.current_step(), self.resolver.scope)

    def read(self, path: str, default: Any = None) -> Any:
        return self.handle.read(path, default)

    def get_status(self) -> dict[str, Any]:
        state = self.state
        step = self.current_step()
        display_path = self._build_display_path()

        allowed: list[str] = []
        if state.status == "running":
            match step:
                case LandingStep():
                    allowed = ["advance"]
                case SingleQuestionStep():
                    allowed = ["choose"]
                case MultiQuestionStep():
                    allowed = ["toggle", "advance"]
                case FormStep():
                    allowed = ["submit"]
        elif state.status == "loading":
            allowed = ["fetch_results"]
        allowed.extend(["redirect", "restart"])

        result: dict[str, Any] = {
            "funnel_name": self.funnel.name,
            "current_step": state.current_step_id,
            "kind": step.kind if step else None,
            "scope": self.resolver.scope,
            "flow_depth": len(state.flow_stack),
            "display_path": display_path,
            "status": state.status,
            "allowed_actions": allowed,
        }

        summary_parts = [f"{self.funnel.name} > {display_path}", state.status]
        if state.diagnostic:
            result["diagnostic"] = state.diagnostic.to_dict()
            summary_parts.append(state.diagnostic.message)
        if state.field_errors:
            result["field_errors"] = list(state.field_errors)
        result["summary"] = ", ".join(summary_parts)
        return result

    def get_history(self, limit: int = 20) -> list[dict[str, Any]]:
        return list(reversed(self.state.history))[:limit]

    # ─── Private ───

    def _new_state(self) -> ExecutionState:
        return ExecutionState(
            current_step_id=self.funnel.start,
            started_at=datetime.now(tz=UTC).strftime("%Y-%m-%d %H:%M:%S"),
        )

    def _build_display_path(self) -> str:
        parts = [frame.flow_id for frame in self.state.flow_stack]
        parts.append(str(self.state.current_step_id))
        return " > ".join(parts)

    def _record(self, step_id: str | None, action: str, data: Any = None) -> None:
        self.state.history.append({
            "step": step_id,
            "scope": self.resolver.scope,
            "action": action,
            "data": json.dumps(data, ensure_ascii=False, default=str) if data is not None else None,
            "timestamp": datetime.now(tz=UTC).strftime("%Y-%m-%d %H:%M:%S"),
        })

    def _apply(self, intent: Intent) -> ActionResult:
        state = self.state
        if not self._started:
            return ActionResult(False, "Funnel not started. Call start() first.")

        match intent:
            case Redirect(step_id=target):
                self._record(target, "redirect")
                return self._go(target)
            case ResultsReady():
                return self._deliver_results(intent)

        if state.status == "halted":
            diag = state.diagnostic
            return ActionResult(
                False,
                f"Funnel is halted ({diag.message if diag else 'unknown error'}). "
                "Redirect to a valid step or restart to continue.",
                state.current_step_id,
            )
        if state.status == "done":
            return ActionResult(False, "Funnel is already completed. Restart to go again.", state.current_step_id)
        if state.status == "loading":
            return ActionResult(False, "Results are loading; no input is accepted.", state.current_step_id)

        step = self.resolver.resolve(state.current_step_id)

        match intent, step:
            case Advance(), LandingStep():
                self._record(step.id, "advance")
                return self._go(step.next)
            case Choose(option_id=option_id), SingleQuestionStep():
                return self._choose(step, option_id)
            case Toggle(option_id=option_id), MultiQuestionStep():
                return self._toggle(step, option_id)
            case Advance(), MultiQuestionStep():
                selected = list(state.selection)
                if step.bind:
                    paths.set(state.context, step.bind, selected)
                self._record(step.id, "submit", selected)
                return self._go(step.next)
            case SubmitForm(values=values), FormStep():
                return self._submit_form(step, values)

        return ActionResult(
            False,
            f'{type(intent).__name__} does not apply to step "{step.id}" ({step.kind}).',
            state.current_step_id,
        )

    def _choose(self, step: SingleQuestionStep, option_id: str) -> ActionResult:
        option = next((o for o in step.options if o.id == option_id), None)
        if option is None:
            available = ", ".join(o.id for o in step.options)
            return ActionResult(
                False,
                f'Option "{option_id}" not found on step "{step.id}". Available options: {available}',
                self.state.current_step_id,
            )
        if step.bind:
            paths.set(self.state.context, step.bind, option.bound_value())
        self._record(step.id, "choose", option.id)
        return self._go(option.next or step.next)

    def _toggle(self, step: MultiQuestionStep, option_id: str) -> ActionResult:
        if all(o.id != option_id for o in step.options):
            available = ", ".join(o.id for o in step.options)
            return ActionResult(
                False,
                f'Option "{option_id}" not found on step "{step.id}". Available options: {available}',
                self.state.current_step_id,
            )
        selection = self.state.selection
        if option_id in selection:
            selection.remove(option_id)
        else:
            selection.append(option_id)
        self._record(step.id, "toggle", option_id)
        self._render()
        state = "selected" if option_id in selection else "deselected"
        return ActionResult(True, f'Option "{option_id}" {state}', step.id)

    def _submit_form(self, step: FormStep, values: Mapping[str, Any]) -> ActionResult:
        missing = [f for f in step.fields if f.required and not paths.is_set(values.get(f.id, ""))]
        if missing:
            failure = ValidationFailure(step.id, missing)
            self.state.field_errors = failure.field_ids
            self._render()
            return ActionResult(False, str(failure), step.id, failure)

        for f in step.fields:
            if f.bind:
                paths.set(self.state.context, f.bind, values.get(f.id, ""))
        self._record(step.id, "submit", {f.id: values.get(f.id, "") for f in step.fields})
        return self._go(step.target)

    def _deliver_results(self, intent: ResultsReady) -> ActionResult:
        state = self.state
        ticket = intent.ticket
        if state.status != "loading" or ticket.epoch != state.epoch or ticket.step_id != state.current_step_id:
            logger.info("Discarding stale results for step %r (epoch %d, now %d)",
                        ticket.step_id, ticket.epoch, state.epoch)
            return ActionResult(False, f'Discarded stale results for step "{ticket.step_id}".',
                                state.current_step_id)
        state.outcome = dict(intent.outcome)
        state.status = "done"
        self._record(state.current_step_id, "results")
        self._render()
        return ActionResult(True, "Results ready", state.current_step_id)

    def _go(self, target: str | None) -> ActionResult:
        """Move to ``target`` and follow pass-through steps until one settles."""
        state = self.state
        base_depth = len(state.flow_stack)
        for _ in range(self.config.max_auto_steps + 1):
            if target == END_SENTINEL:
                scope = self.resolver.scope
                target = self.resolver.exit_flow()
                self._record(target, "exit_flow", scope)

            state.current_step_id = target
            state.epoch += 1
            state.selection = []
            state.field_errors = []
            state.outcome = None
            state.diagnostic = None
            state.status = "running"

            try:
                step = self.resolver.resolve(target)
            except UnresolvedStep as e:
                if target == DONE_STEP and not state.flow_stack:
                    state.status = "done"
                    self._record(target, "complete")
                    self._render()
                    return ActionResult(True, "Funnel completed", target)
                return self._halt(e)

            logger.debug("→ %s (%s) scope=%s", target, step.kind, self.resolver.scope)
            self._record(target, "transition")

            match step:
                case RouterStep():
                    target = self._route(step)
                    continue
                case FlowRefStep():
                    try:
                        target = self.resolver.enter_flow(step.flow_id, step.next)
                    except UnknownFlow as e:
                        return self._halt(e)
                    self._record(target, "enter_flow", step.flow_id)
                    continue
                case LandingStep():
                    self._select_variant(step)
                case MultiQuestionStep():
                    state.selection = list(dict.fromkeys(step.preselect))
                case ResultsStep():
                    state.status = "loading"
                case EndStep():
                    state.status = "done"
                case UnsupportedStep():
                    return self._halt(UnsupportedStepKind(step.id, step.kind))

            self._render()
            return ActionResult(True, f"Advanced to: {target}", target)

        # drop frames pushed by a flow_ref cycle
        del state.flow_stack[base_depth:]
        return self._halt(UnresolvedStep(
            target, self.resolver.scope,
            f"Gave up after {self.config.max_auto_steps} pass-through steps (router/flow_ref cycle?)",
        ))

    def _route(self, step: RouterStep) -> str | None:
        for route in step.routes:
            if evaluate(route.when, self.state.context, self.config.max_condition_depth):
                return route.to
        return step.default_next

    def _select_variant(self, step: LandingStep) -> dict[str, Any]:
        context = self.state.context
        memo = paths.get(context, "system.variant")
        if not isinstance(memo, dict):
            memo = {}
            paths.set(context, "system.variant", memo)

        key = self.state.current_step_id
        if key in memo:
            return memo[key]

        if not step.variants:
            variant: dict[str, Any] = {}
        elif step.variant_strategy == "random":
            variant = copy.deepcopy(self.rng.choice(step.variants))
        else:
            variant = copy.deepcopy(step.variants[0])
        memo[key] = variant
        return variant

    def _halt(self, error: FunnelError) -> ActionResult:
        state = self.state
        state.status = "halted"
        state.diagnostic = Diagnostic(type(error).__name__, str(error), state.current_step_id)
        logger.error("Funnel halted at %r: %s", state.current_step_id, error)
        self._record(state.current_step_id, "halt", state.diagnostic.to_dict())
        self._render()
        return ActionResult(False, str(error), state.current_step_id, error)

    def _render(self) -> None:
        if not self.renderers:
            return
        view = self.view()
        renderer = self.renderers.get(view.kind) or self.renderers.get("*")
        if renderer is not None:
            renderer(view, self.handle)
