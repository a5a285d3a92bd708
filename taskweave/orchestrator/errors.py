"""Error taxonomy for the orchestration core.

Per-task failures are captured as failed ``TaskResult`` values carrying the
``kind`` of the error that caused them. Only batch-level errors
(``DependencyDeadlock``, ``BatchValidationError``) halt a whole workflow,
and those are reported on the ``ExecutionBatch`` rather than raised.
"""

from __future__ import annotations

from typing import Any


class OrchestrationError(Exception):
    """Base exception for orchestration errors."""

    kind = "orchestration_error"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": str(self)}


class NoAgentAvailable(OrchestrationError):
    """Raised when no agent can be selected (empty registry, missing planner)."""

    kind = "no_agent_available"


class AgentSelectionFailed(OrchestrationError):
    """Raised in strict selection mode when the ranking call yields no agent."""

    kind = "agent_selection_failed"


class TaskTimeout(OrchestrationError):
    """Raised when a task exceeds its allotted execution time."""

    kind = "timeout"

    def __init__(self, task_id: str, timeout_seconds: float):
        super().__init__(f"Task {task_id} timed out after {timeout_seconds}s")
        self.task_id = task_id
        self.timeout_seconds = timeout_seconds


class TaskCancelled(OrchestrationError):
    """Raised when an in-flight task is cancelled by id."""

    kind = "cancelled"

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} was cancelled")
        self.task_id = task_id


class DependencyDeadlock(OrchestrationError):
    """The scheduler cannot make progress.

    Attributes:
        stalled_task_ids: Tasks that can never become executable
        cycles: Dependency cycles found in the batch
        missing: Mapping of task id to dependency ids absent from the batch
    """

    kind = "dependency_deadlock"

    def __init__(
        self,
        stalled_task_ids: list[str],
        cycles: list[list[str]] | None = None,
        missing: dict[str, list[str]] | None = None,
    ):
        self.stalled_task_ids = list(stalled_task_ids)
        self.cycles = cycles or []
        self.missing = missing or {}
        details = []
        if self.cycles:
            details.append(
                "cycles: " + "; ".join(" -> ".join(c + c[:1]) for c in self.cycles)
            )
        if self.missing:
            details.append(
                "unknown dependencies: "
                + ", ".join(f"{tid} -> {deps}" for tid, deps in self.missing.items())
            )
        message = f"Unable to resolve dependencies for tasks {self.stalled_task_ids}"
        if details:
            message += " (" + "; ".join(details) + ")"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "stalled_task_ids": self.stalled_task_ids,
            "cycles": self.cycles,
            "missing": self.missing,
        }


class BatchValidationError(OrchestrationError):
    """Raised when a batch is malformed, e.g. duplicate task ids."""

    kind = "invalid_batch"


class AggregationEmpty(OrchestrationError):
    """There are no successful results to aggregate."""

    kind = "aggregation_empty"

    def __init__(self, message: str = "No successful results to aggregate"):
        super().__init__(message)
