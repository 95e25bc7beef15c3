from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

END_SENTINEL = "__end__"  # transition target that exits the current flow
DONE_STEP = "done"  # reserved step reached when exiting the top-level scope

# ─── Conditions ───

@dataclass(frozen=True)
class Eq:
    path: str
    literal: Any


@dataclass(frozen=True)
class Contains:
    path: str
    literal: Any


@dataclass(frozen=True)
class NotSet:
    path: str


@dataclass(frozen=True)
class And:
    conditions: tuple[Condition, ...] = ()


@dataclass(frozen=True)
class Or:
    conditions: tuple[Condition, ...] = ()


@dataclass(frozen=True)
class Unrecognized:
    raw: Any = None


Condition = Eq | Contains | NotSet | And | Or | Unrecognized

# ─── Step building blocks ───

@dataclass
class Option:
    id: str
    label: str = ""
    value: Any = None
    next: str | None = None

    def bound_value(self) -> Any:
        return self.id if self.value is None else self.value


@dataclass
class FormField:
    id: str
    label: str = ""
    required: bool = False
    bind: str | None = None
    placeholder: str = ""


@dataclass
class Route:
    when: Condition
    to: str | None

# ─── Steps (closed set of kinds) ───

@dataclass
class LandingStep:
    kind: ClassVar[str] = "landing"
    id: str
    next: str | None = None
    variants: list[dict[str, Any]] = field(default_factory=list)
    variant_strategy: str | None = None
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class SingleQuestionStep:
    kind: ClassVar[str] = "question_single"
    id: str
    options: list[Option] = field(default_factory=list)
    bind: str | None = None
    next: str | None = None
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class MultiQuestionStep:
    kind: ClassVar[str] = "question_multi"
    id: str
    options: list[Option] = field(default_factory=list)
    bind: str | None = None
    next: str | None = None
    preselect: list[str] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class FormStep:
    kind: ClassVar[str] = "form"
    id: str
    fields: list[FormField] = field(default_factory=list)
    next: str | None = None
    submit_next: str | None = None  # onSubmit.next
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def target(self) -> str | None:
        return self.submit_next or self.next


@dataclass
class RouterStep:
    kind: ClassVar[str] = "router"
    id: str
    routes: list[Route] = field(default_factory=list)
    default_next: str | None = None
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class FlowRefStep:
    kind: ClassVar[str] = "flow_ref"
    id: str
    flow_id: str = ""
    next: str | None = None
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class ResultsStep:
    kind: ClassVar[str] = "results"
    id: str
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class EndStep:
    kind: ClassVar[str] = "end"
    id: str
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class UnsupportedStep:
    id: str
    kind: str = ""
    config: dict[str, Any] = field(default_factory=dict)


Step = (
    LandingStep
    | SingleQuestionStep
    | MultiQuestionStep
    | FormStep
    | RouterStep
    | FlowRefStep
    | ResultsStep
    | EndStep
    | UnsupportedStep
)

# ─── Funnel Definition IR (parsed from JSON/YAML) ───

@dataclass
class FlowDefinition:
    id: str
    start: str | None = None
    steps: dict[str, Step] = field(default_factory=dict)


@dataclass
class FunnelDefinition:
    start: str | None = None
    steps: dict[str, Step] = field(default_factory=dict)
    flows: dict[str, FlowDefinition] = field(default_factory=dict)
    name: str = "unnamed funnel"
    description: str = ""

# ─── Session Runtime State ───

@dataclass
class ScopeFrame:
    flow_id: str
    return_step_id: str | None


@dataclass
class Diagnostic:
    error: str  # exception class name, e.g. "UnresolvedStep"
    message: str
    step_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message, "step_id": self.step_id}


def new_context() -> dict[str, Any]:
    return {"lead": {}, "answers": {}, "api": {}, "system": {"variant": {}}}


@dataclass
class ExecutionState:
    current_step_id: str | None
    flow_stack: list[ScopeFrame] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=new_context)
    status: str = "running"  # running | loading | done | halted
    diagnostic: Diagnostic | None = None
    selection: list[str] = field(default_factory=list)  # active question_multi only
    field_errors: list[str] = field(default_factory=list)  # active form only
    outcome: dict[str, Any] | None = None
    epoch: int = 0
    history: list[dict[str, Any]] = field(default_factory=list)
    started_at: str = ""
