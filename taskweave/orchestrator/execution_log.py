"""Execution logging collaborators.

The orchestrator reports every task execution to an ``ExecutionLogger``.
Recording is best effort and happens in the background: a slow logger never
delays a task result and a logger that raises never fails the task.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from .models import AgentProfile, Task, TaskResult

logger = structlog.get_logger()

MAX_LOGGED_OUTPUT = 5000


class ExecutionLogger(ABC):
    """Receives one record per task execution attempt."""

    @abstractmethod
    async def record(
        self,
        task: Task,
        agent: AgentProfile | None,
        result: TaskResult,
    ) -> None:
        """Record an execution. ``agent`` is None when no agent was selected."""


class StructlogExecutionLogger(ExecutionLogger):
    """Emits one structured log event per execution."""

    def __init__(self) -> None:
        self.log = structlog.get_logger().bind(component="execution_log")

    async def record(
        self,
        task: Task,
        agent: AgentProfile | None,
        result: TaskResult,
    ) -> None:
        output = result.output
        if isinstance(output, str) and len(output) > MAX_LOGGED_OUTPUT:
            output = output[:MAX_LOGGED_OUTPUT]

        self.log.info(
            "Task execution recorded",
            task_id=task.id,
            task_type=task.type,
            agent_id=result.agent_id,
            agent_name=agent.name if agent else None,
            status=result.status.value,
            tokens_used=result.tokens.total,
            duration=result.duration_seconds,
            error=result.error,
            output=output,
        )
