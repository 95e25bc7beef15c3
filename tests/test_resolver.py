"""Scoped step lookup and the sub-flow stack."""
from __future__ import annotations

import pytest

from funnel_engine.compiler import parse_funnel
from funnel_engine.engine.resolver import Resolver
from funnel_engine.errors import UnknownFlow, UnresolvedStep
from funnel_engine.types import DONE_STEP, ExecutionState, ScopeFrame

FUNNEL = parse_funnel({
    "start": "home",
    "steps": {
        "home": {"type": "end", "title": "top home"},
        "shared": {"type": "end", "title": "top shared"},
    },
    "flows": {
        "outer": {
            "start": "o1",
            "steps": {
                "o1": {"type": "end"},
                "only_outer": {"type": "end"},
                "shared": {"type": "end", "title": "outer shared"},
            },
        },
        "inner": {"start": "i1", "steps": {"i1": {"type": "end"}}},
    },
})


@pytest.fixture
def resolver():
    return Resolver(FUNNEL, ExecutionState(current_step_id="home"))


def test_top_level_lookup(resolver):
    assert resolver.scope is None
    assert resolver.resolve("home").config["title"] == "top home"


def test_innermost_scope_shadows_top_level(resolver):
    resolver.enter_flow("outer", "home")
    assert resolver.resolve("shared").config["title"] == "outer shared"


def test_falls_back_to_top_level(resolver):
    resolver.enter_flow("outer", "home")
    assert resolver.resolve("home").config["title"] == "top home"


def test_intermediate_scopes_are_not_searched(resolver):
    resolver.enter_flow("outer", "home")
    resolver.enter_flow("inner", "o1")
    assert resolver.scope == "inner"
    assert resolver.resolve("shared").config["title"] == "top shared"
    with pytest.raises(UnresolvedStep) as exc:
        resolver.resolve("only_outer")
    assert exc.value.step_id == "only_outer"
    assert exc.value.scope == "inner"


def test_unresolved_step(resolver):
    with pytest.raises(UnresolvedStep, match='Unknown step "nope"'):
        resolver.resolve("nope")


def test_resolve_none_is_unresolved(resolver):
    with pytest.raises(UnresolvedStep, match="missing"):
        resolver.resolve(None)


def test_enter_flow_pushes_and_returns_start(resolver):
    assert resolver.enter_flow("outer", "home") == "o1"
    assert resolver.state.flow_stack == [ScopeFrame("outer", "home")]


def test_unknown_flow_leaves_stack_untouched(resolver):
    resolver.enter_flow("outer", "home")
    with pytest.raises(UnknownFlow) as exc:
        resolver.enter_flow("ghost", "o1")
    assert exc.value.flow_id == "ghost"
    assert resolver.state.flow_stack == [ScopeFrame("outer", "home")]


def test_exit_flow_pops_to_return_step(resolver):
    resolver.enter_flow("outer", "home")
    resolver.enter_flow("inner", "o1")
    assert resolver.exit_flow() == "o1"
    assert resolver.scope == "outer"
    assert resolver.exit_flow() == "home"
    assert resolver.state.flow_stack == []


def test_exit_flow_on_empty_stack_returns_done(resolver):
    assert resolver.exit_flow() == DONE_STEP
    assert resolver.state.flow_stack == []
