"""Task runner executing one task against one agent.

The runner never raises for task-level problems: provider errors, timeouts
and cancellations all come back as ``failed`` results with the error kind
recorded. Each in-flight call is tracked in a per-instance table keyed by
task id so it can be cancelled from outside.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import structlog

from ..core.providers.base import CompletionProvider, ProviderError
from .errors import TaskCancelled, TaskTimeout
from .models import AgentProfile, Task, TaskResult, TaskStatus, TokenUsage

logger = structlog.get_logger()


def render_input(payload: Any) -> str:
    """Render a task input for the prompt.

    Keys are sorted when they are mutually comparable; payloads JSON cannot
    encode at all fall back to ``repr``.
    """
    try:
        return json.dumps(payload, indent=2, default=str, sort_keys=True)
    except (TypeError, ValueError):
        pass
    try:
        return json.dumps(payload, indent=2, default=str)
    except (TypeError, ValueError):
        return repr(payload)


def build_task_prompt(task: Task) -> str:
    """Build the user prompt for a task."""
    return f"""TASK: {task.description}

INPUT DATA:
{render_input(task.input)}

Provide a comprehensive response to complete this task."""


class TaskRunner:
    """Runs tasks through a completion provider with timeout and cancellation.

    Example:
        runner = TaskRunner(provider, timeout_seconds=30)
        result = await runner.run(agent, task)

        # From another coroutine
        runner.cancel(task.id)
    """

    def __init__(
        self,
        provider: CompletionProvider,
        timeout_seconds: float = 60.0,
    ):
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self._running: dict[str, asyncio.Task] = {}
        self.log = structlog.get_logger().bind(component="task_runner")

    def running_task_ids(self) -> list[str]:
        """Ids of tasks currently in flight."""
        return list(self._running)

    def cancel(self, task_id: str) -> bool:
        """Signal cancellation to a running task.

        Returns:
            True if a cancellation signal was sent
        """
        call = self._running.get(task_id)
        if call is None or call.done():
            return False

        call.cancel()
        self.log.info("Task cancellation requested", task_id=task_id)
        return True

    async def run(self, agent: AgentProfile, task: Task) -> TaskResult:
        """Execute ``task`` with ``agent``'s configuration."""
        start = time.monotonic()
        self.log.info("Executing task", task_id=task.id, agent_id=agent.id)

        try:
            call = asyncio.ensure_future(
                self.provider.complete(
                    model=agent.model,
                    system_prompt=agent.system_prompt,
                    user_prompt=build_task_prompt(task),
                    max_tokens=agent.max_tokens,
                    temperature=agent.temperature,
                )
            )
        except Exception as e:
            self.log.warning("Task could not be started", task_id=task.id, error=str(e))
            return self._failed(agent, task, start, e)
        self._running[task.id] = call

        try:
            done, _ = await asyncio.wait({call}, timeout=self.timeout_seconds)

            if not done:
                call.cancel()
                error = TaskTimeout(task.id, self.timeout_seconds)
                self.log.warning("Task timeout", task_id=task.id, timeout=self.timeout_seconds)
                return self._failed(agent, task, start, error)

            if call.cancelled():
                return self._failed(agent, task, start, TaskCancelled(task.id))

            exc = call.exception()
            if exc is not None:
                self.log.warning(
                    "Task execution error",
                    task_id=task.id,
                    agent_id=agent.id,
                    error=str(exc),
                )
                return self._failed(agent, task, start, exc)

            response = call.result()
            duration = time.monotonic() - start
            self.log.info(
                "Task completed",
                task_id=task.id,
                agent_id=agent.id,
                duration=duration,
                tokens=response.total_tokens,
            )
            return TaskResult(
                task_id=task.id,
                agent_id=agent.id,
                status=TaskStatus.SUCCESS,
                output=response.text,
                tokens=TokenUsage(
                    prompt=response.prompt_tokens,
                    completion=response.completion_tokens,
                ),
                duration_seconds=duration,
            )
        finally:
            # The caller itself may have been cancelled while waiting.
            if not call.done():
                call.cancel()
            if self._running.get(task.id) is call:
                del self._running[task.id]

    def _failed(
        self,
        agent: AgentProfile,
        task: Task,
        start: float,
        error: BaseException,
    ) -> TaskResult:
        tokens = TokenUsage()
        if isinstance(error, ProviderError):
            tokens = TokenUsage(prompt=error.prompt_tokens, completion=error.completion_tokens)

        return TaskResult(
            task_id=task.id,
            agent_id=agent.id,
            status=TaskStatus.FAILED,
            tokens=tokens,
            duration_seconds=time.monotonic() - start,
            error=str(error) or error.__class__.__name__,
            error_kind=getattr(error, "kind", "provider_error"),
        )
