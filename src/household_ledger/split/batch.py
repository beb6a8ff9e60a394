"""Best-effort batches of independent store writes.

Portion writes are never allowed to block the main transaction. Each
operation runs on its own; failures are logged and collected instead of
raised, so callers and tests can still see exactly what went wrong.
"""

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class OperationOutcome(BaseModel):
    """Result of one operation in a batch."""

    action: str  # "create", "update" or "delete"
    target: str  # member or document the operation touched
    ok: bool
    result: Any = None
    error: str | None = None


class BatchResult(BaseModel):
    """Aggregate outcome of a batch of independent operations."""

    outcomes: list[OperationOutcome] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def succeeded(self) -> list[OperationOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failures(self) -> list[OperationOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def count(self, action: str, ok: bool = True) -> int:
        """Number of outcomes for an action with the given success flag."""
        return sum(1 for o in self.outcomes if o.action == action and o.ok == ok)

    def run(self, action: str, target: str, operation: Callable[[], Any]) -> None:
        """Run one operation and record its outcome. Never raises."""
        try:
            result = operation()
        except Exception as e:
            self.record_failure(action, target, e)
            return
        self.outcomes.append(
            OperationOutcome(action=action, target=target, ok=True, result=result)
        )

    def record_failure(self, action: str, target: str, error: Exception) -> None:
        logger.error(f"Failed to {action} split portion for {target}: {error}")
        self.outcomes.append(
            OperationOutcome(action=action, target=target, ok=False, error=str(error))
        )

    def merge(self, other: "BatchResult") -> "BatchResult":
        """Append another batch's outcomes to this one."""
        self.outcomes.extend(other.outcomes)
        return self

    def summary(self) -> str:
        parts = []
        for action in ("create", "update", "delete"):
            done = self.count(action)
            failed = self.count(action, ok=False)
            if done or failed:
                parts.append(
                    f"{action}d {done}" + (f" ({failed} failed)" if failed else "")
                )
        return ", ".join(parts) or "no portion changes"
