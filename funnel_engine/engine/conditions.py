"""Route condition evaluator.

Conditions are closed variants (Eq, Contains, NotSet, And, Or). Anything
else, including shapes the parser could not recognise, evaluates to False.
"""
from __future__ import annotations

import logging
from typing import Any

from funnel_engine.engine.paths import UNSET, get, is_set
from funnel_engine.types import And, Condition, Contains, Eq, NotSet, Or

logger = logging.getLogger("funnel_engine.conditions")

DEFAULT_MAX_DEPTH = 32


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without coercion: bools only equal bools, strings only strings."""
    if left is UNSET or right is UNSET:
        return False
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(strict_equals(a, b) for a, b in zip(left, right))
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(strict_equals(v, right[k]) for k, v in left.items())
    if type(left) is not type(right):
        return False
    return left == right


def evaluate(condition: Condition, context: dict[str, Any], max_depth: int = DEFAULT_MAX_DEPTH) -> bool:
    return _evaluate(condition, context, max_depth, 1)


def _evaluate(condition: Condition, context: dict[str, Any], max_depth: int, depth: int) -> bool:
    if depth > max_depth:
        logger.warning("Condition nesting exceeds %d levels; evaluating as false", max_depth)
        return False

    match condition:
        case Eq(path=path, literal=literal):
            return strict_equals(get(context, path), literal)
        case Contains(path=path, literal=literal):
            value = get(context, path)
            return isinstance(value, (list, tuple)) and any(strict_equals(v, literal) for v in value)
        case NotSet(path=path):
            return not is_set(get(context, path))
        case And(conditions=conditions):
            return all(_evaluate(c, context, max_depth, depth + 1) for c in conditions)
        case Or(conditions=conditions):
            return any(_evaluate(c, context, max_depth, depth + 1) for c in conditions)
        case _:
            return False
