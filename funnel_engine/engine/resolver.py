"""Scoped step lookup and the sub-flow stack."""
from __future__ import annotations

from typing import TYPE_CHECKING

from funnel_engine.errors import UnknownFlow, UnresolvedStep
from funnel_engine.types import DONE_STEP, ScopeFrame

if TYPE_CHECKING:
    from funnel_engine.types import ExecutionState, FunnelDefinition, Step


class Resolver:
    """Looks up steps in the innermost active flow, then the top level.

    Intermediate ancestor flows are never searched.
    """

    def __init__(self, funnel: FunnelDefinition, state: ExecutionState):
        self.funnel = funnel
        self.state = state

    @property
    def scope(self) -> str | None:
        stack = self.state.flow_stack
        return stack[-1].flow_id if stack else None

    def resolve(self, step_id: str | None) -> Step:
        if step_id is None:
            raise UnresolvedStep(None, self.scope, "No step to resolve: transition target is missing")
        flow_id = self.scope
        if flow_id is not None:
            flow = self.funnel.flows.get(flow_id)
            if flow and step_id in flow.steps:
                return flow.steps[step_id]
        step = self.funnel.steps.get(step_id)
        if step is None:
            raise UnresolvedStep(step_id, flow_id)
        return step

    def enter_flow(self, flow_id: str, return_step_id: str | None) -> str | None:
        """Push a scope frame; returns the flow's start step."""
        flow = self.funnel.flows.get(flow_id)
        if flow is None:
            raise UnknownFlow(flow_id)
        self.state.flow_stack.append(ScopeFrame(flow_id=flow_id, return_step_id=return_step_id))
        return flow.start

    def exit_flow(self) -> str | None:
        """Pop a scope frame; returns where to continue."""
        if not self.state.flow_stack:
            return DONE_STEP
        return self.state.flow_stack.pop().return_step_id
