"""Results collaborator boundary."""
from __future__ import annotations

import asyncio
from typing import Any, Protocol

PLACEHOLDER_OUTCOME = {
    "headline": "Your best matches",
    "body": "(API integration goes here)",
    "matches": [],
}


class ResultsProvider(Protocol):
    async def fetch(self, context: dict[str, Any]) -> dict[str, Any]: ...


class MockResultsProvider:
    """Waits a fixed delay, then returns a placeholder outcome."""

    def __init__(self, delay: float = 0.8, outcome: dict[str, Any] | None = None):
        self.delay = delay
        self.outcome = dict(outcome or PLACEHOLDER_OUTCOME)
        self.calls: list[dict[str, Any]] = []

    async def fetch(self, context: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(context)
        await asyncio.sleep(self.delay)
        return dict(self.outcome)
