"""Interpreter for declarative branching questionnaires ("funnels")."""
from funnel_engine.compiler import load_funnel, parse_funnel
from funnel_engine.config import FunnelConfig, load_config
from funnel_engine.engine import ActionResult, Interpreter, MockResultsProvider
from funnel_engine.errors import (
    FunnelError,
    SchemaError,
    UnknownFlow,
    UnresolvedStep,
    UnsupportedStepKind,
    ValidationFailure,
)

__all__ = [
    "ActionResult",
    "FunnelConfig",
    "FunnelError",
    "Interpreter",
    "MockResultsProvider",
    "SchemaError",
    "UnknownFlow",
    "UnresolvedStep",
    "UnsupportedStepKind",
    "ValidationFailure",
    "load_config",
    "load_funnel",
    "parse_funnel",
]
