"""Error taxonomy for funnel interpretation."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from funnel_engine.types import FormField


class FunnelError(Exception):
    """Base class for every error raised by the engine."""


class SchemaError(FunnelError, ValueError):
    """The funnel document does not have the expected shape."""


class UnknownFlow(FunnelError):
    def __init__(self, flow_id: str):
        super().__init__(f'Unknown flow "{flow_id}"')
        self.flow_id = flow_id


class UnresolvedStep(FunnelError):
    def __init__(self, step_id: str | None, scope: str | None = None, reason: str | None = None):
        where = f'flow "{scope}" or the top level' if scope else "the top level"
        message = reason or f'Unknown step "{step_id}": not found in {where}'
        super().__init__(message)
        self.step_id = step_id
        self.scope = scope


class UnsupportedStepKind(FunnelError):
    def __init__(self, step_id: str, kind: str):
        super().__init__(f'Unsupported step type "{kind}" at step "{step_id}"')
        self.step_id = step_id
        self.kind = kind


class ValidationFailure(FunnelError):
    def __init__(self, step_id: str, missing: list[FormField]):
        labels = ", ".join(f.label or f.id for f in missing)
        super().__init__(f"Required: {labels}")
        self.step_id = step_id
        self.missing = missing

    @property
    def field_ids(self) -> list[str]:
        return [f.id for f in self.missing]
