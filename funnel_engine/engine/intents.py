"""User and collaborator intents consumed by the interpreter, one at a time."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Advance:
    """Landing CTA, or "Next" on a multi-select question."""


@dataclass(frozen=True)
class Choose:
    option_id: str


@dataclass(frozen=True)
class Toggle:
    option_id: str


@dataclass(frozen=True)
class SubmitForm:
    values: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Redirect:
    step_id: str


@dataclass(frozen=True)
class ResultsTicket:
    step_id: str | None
    epoch: int


@dataclass(frozen=True)
class ResultsReady:
    ticket: ResultsTicket
    outcome: dict[str, Any] = field(default_factory=dict)


Intent = Advance | Choose | Toggle | SubmitForm | Redirect | ResultsReady
