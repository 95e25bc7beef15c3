"""Parse JSON/YAML funnel documents into the step/condition IR."""
from __future__ import annotations

import json
import urllib.request
from pathlib import Path
from typing import Any

import yaml

from funnel_engine.errors import SchemaError
from funnel_engine.types import (
    And,
    Condition,
    Contains,
    EndStep,
    Eq,
    FlowDefinition,
    FlowRefStep,
    FormField,
    FormStep,
    FunnelDefinition,
    LandingStep,
    MultiQuestionStep,
    NotSet,
    Option,
    Or,
    ResultsStep,
    Route,
    RouterStep,
    SingleQuestionStep,
    Step,
    UnsupportedStep,
    Unrecognized,
)

# ─── Conditions ───

def _path_and_literal(args: Any) -> tuple[str, Any] | None:
    if isinstance(args, (list, tuple)) and len(args) == 2 and isinstance(args[0], str):
        return args[0], args[1]
    return None


def parse_condition(raw: Any) -> Condition:
    """Map a raw condition onto a variant; malformed shapes become Unrecognized.

    Keys are checked in the order eq, contains, notSet, and, or.
    """
    if not isinstance(raw, dict):
        return Unrecognized(raw)

    if "eq" in raw:
        pair = _path_and_literal(raw["eq"])
        return Eq(*pair) if pair else Unrecognized(raw)
    if "contains" in raw:
        pair = _path_and_literal(raw["contains"])
        return Contains(*pair) if pair else Unrecognized(raw)
    if "notSet" in raw:
        arg = raw["notSet"]
        if isinstance(arg, (list, tuple)) and arg and isinstance(arg[0], str):
            return NotSet(arg[0])
        if isinstance(arg, str) and arg:
            return NotSet(arg)
        return Unrecognized(raw)
    if "and" in raw:
        items = raw["and"]
        if not isinstance(items, list):
            return Unrecognized(raw)
        return And(tuple(parse_condition(c) for c in items))
    if "or" in raw:
        items = raw["or"]
        if not isinstance(items, list):
            return Unrecognized(raw)
        return Or(tuple(parse_condition(c) for c in items))
    return Unrecognized(raw)

# ─── Steps ───

# Keys consumed by the parser, not forwarded to config
_CONSUMED_KEYS = frozenset({
    "type", "kind", "next", "bind", "options", "preselect", "fields",
    "onSubmit", "routes", "defaultNext", "flowId", "variants", "variantStrategy",
})


def _str_or_none(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _parse_options(raw: Any, step_id: str) -> list[Option]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SchemaError(f'Step "{step_id}": "options" must be a list')
    options: list[Option] = []
    for item in raw:
        if not isinstance(item, dict) or "id" not in item:
            raise SchemaError(f'Step "{step_id}": every option needs an "id"')
        options.append(Option(
            id=str(item["id"]),
            label=str(item.get("label", item["id"])),
            value=item.get("value"),
            next=_str_or_none(item.get("next")),
        ))
    return options


def _parse_fields(raw: Any, step_id: str) -> list[FormField]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SchemaError(f'Step "{step_id}": "fields" must be a list')
    fields: list[FormField] = []
    for item in raw:
        if not isinstance(item, dict) or "id" not in item:
            raise SchemaError(f'Step "{step_id}": every field needs an "id"')
        fields.append(FormField(
            id=str(item["id"]),
            label=str(item.get("label", item["id"])),
            required=bool(item.get("required", False)),
            bind=_str_or_none(item.get("bind")),
            placeholder=str(item.get("placeholder") or ""),
        ))
    return fields


def _parse_routes(raw: Any, step_id: str) -> list[Route]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SchemaError(f'Step "{step_id}": "routes" must be a list')
    routes: list[Route] = []
    for item in raw:
        if not isinstance(item, dict):
            raise SchemaError(f'Step "{step_id}": every route must be a mapping')
        routes.append(Route(when=parse_condition(item.get("when")), to=_str_or_none(item.get("to"))))
    return routes


def parse_step(step_id: str, body: Any) -> Step:
    if not isinstance(body, dict):
        raise SchemaError(f'Step "{step_id}" must be a mapping')

    kind = body.get("type") or body.get("kind") or ""
    config = {k: v for k, v in body.items() if k not in _CONSUMED_KEYS}
    next_id = _str_or_none(body.get("next"))
    bind = _str_or_none(body.get("bind"))

    match kind:
        case "landing":
            variants = body.get("variants") or []
            if not isinstance(variants, list) or not all(isinstance(v, dict) for v in variants):
                raise SchemaError(f'Step "{step_id}": "variants" must be a list of mappings')
            return LandingStep(
                id=step_id,
                next=next_id,
                variants=variants,
                variant_strategy=body.get("variantStrategy"),
                config=config,
            )
        case "question_single":
            return SingleQuestionStep(
                id=step_id,
                options=_parse_options(body.get("options"), step_id),
                bind=bind,
                next=next_id,
                config=config,
            )
        case "question_multi":
            return MultiQuestionStep(
                id=step_id,
                options=_parse_options(body.get("options"), step_id),
                bind=bind,
                next=next_id,
                preselect=[str(p) for p in body.get("preselect") or []],
                config=config,
            )
        case "form":
            on_submit = body.get("onSubmit")
            return FormStep(
                id=step_id,
                fields=_parse_fields(body.get("fields"), step_id),
                next=next_id,
                submit_next=_str_or_none(on_submit.get("next")) if isinstance(on_submit, dict) else None,
                config=config,
            )
        case "router":
            return RouterStep(
                id=step_id,
                routes=_parse_routes(body.get("routes"), step_id),
                default_next=_str_or_none(body.get("defaultNext")),
                config=config,
            )
        case "flow_ref":
            return FlowRefStep(
                id=step_id,
                flow_id=str(body.get("flowId") or ""),
                next=next_id,
                config=config,
            )
        case "results":
            return ResultsStep(id=step_id, config=config)
        case "end":
            return EndStep(id=step_id, config=config)
        case _:
            # kept so the interpreter can report it when reached
            return UnsupportedStep(id=step_id, kind=str(kind), config=config)


def _parse_steps(raw: Any, where: str) -> dict[str, Step]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise SchemaError(f'Invalid {where}: "steps" must be a mapping of step id to step')
    return {str(step_id): parse_step(str(step_id), body) for step_id, body in raw.items()}

# ─── Documents ───

def parse_funnel(raw: Any) -> FunnelDefinition:
    if not isinstance(raw, dict):
        raise SchemaError("Invalid funnel: expected a mapping")

    flows_raw = raw.get("flows")
    if flows_raw is None:
        flows_raw = {}
    if not isinstance(flows_raw, dict):
        raise SchemaError('Invalid funnel: "flows" must be a mapping of flow id to flow')

    flows: dict[str, FlowDefinition] = {}
    for flow_id, flow_raw in flows_raw.items():
        if not isinstance(flow_raw, dict):
            raise SchemaError(f'Flow "{flow_id}" must be a mapping')
        flows[str(flow_id)] = FlowDefinition(
            id=str(flow_id),
            start=_str_or_none(flow_raw.get("start")),
            steps=_parse_steps(flow_raw.get("steps"), f'flow "{flow_id}"'),
        )

    return FunnelDefinition(
        start=_str_or_none(raw.get("start")),
        steps=_parse_steps(raw.get("steps"), "funnel"),
        flows=flows,
        name=str(raw.get("name") or "unnamed funnel"),
        description=str(raw.get("description") or ""),
    )


def parse_funnel_text(content: str, fmt: str = "yaml") -> FunnelDefinition:
    try:
        raw = json.loads(content) if fmt == "json" else yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaError(f"Invalid {fmt.upper()}: {e}") from e
    return parse_funnel(raw)


def load_funnel(source: str | Path | dict[str, Any], timeout: float = 10.0) -> FunnelDefinition:
    """Load a funnel from a mapping, a .json/.yaml file, or an http(s) URL."""
    if isinstance(source, dict):
        return parse_funnel(source)

    text = str(source)
    if text.startswith(("http://", "https://")):
        with urllib.request.urlopen(text, timeout=timeout) as resp:
            return parse_funnel_text(resp.read().decode("utf-8"), "json")

    path = Path(source)
    fmt = "json" if path.suffix.lower() == ".json" else "yaml"
    return parse_funnel_text(path.read_text(encoding="utf-8"), fmt)
