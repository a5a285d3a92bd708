"""Public orchestration surface.

The ``Orchestrator`` wires the registry, selector, runner, scheduler,
decomposer and aggregator together. Each instance owns its own registry and
running-task table, so several orchestrators can coexist in one process.

Example usage:
    orchestrator = Orchestrator.from_settings(get_settings())

    tasks = await orchestrator.decompose_goal("Write a launch announcement")
    batch = await orchestrator.execute_workflow(tasks, parallel=True)
    summary = await orchestrator.aggregate_results(batch.results, "summarize")
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Any

import structlog

from ..config import Settings
from ..core.providers import get_completion_provider
from ..core.providers.base import CompletionProvider
from ..utils.logging import LogContext
from .agent_registry import CapabilityRegistry
from .agent_selector import AgentSelector
from .aggregator import ResultAggregator
from .errors import AgentSelectionFailed, NoAgentAvailable
from .execution_log import ExecutionLogger, StructlogExecutionLogger
from .models import (
    NO_AGENT_ID,
    AgentProfile,
    AggregateOutput,
    AggregationStrategy,
    ExecutionBatch,
    OrchestratorStats,
    Task,
    TaskResult,
    TaskStatus,
)
from .scheduler import DependencyScheduler
from .task_decomposer import GoalDecomposer
from .task_runner import TaskRunner

logger = structlog.get_logger()


class Orchestrator:
    """Coordinates agents for single tasks, workflows and goals.

    Args:
        provider: Completion provider shared by every component
        registry: Agent registry (defaults to the built-in profiles)
        execution_logger: Receives one record per execution; records are
            delivered in the background, see ``flush_execution_logs``
        max_concurrent_agents: Per-wave concurrency bound
        task_timeout_seconds: Per-task timeout
        selection_model: Model for the agent ranking call
        selection_timeout_seconds: Timeout for the agent ranking call
        summary_model: Model for the summarize strategy
        strict_agent_selection: Fail instead of falling back to the first
            agent when the ranking call cannot pick one
        planner_agent_id: Agent used for goal decomposition
    """

    def __init__(
        self,
        provider: CompletionProvider,
        registry: CapabilityRegistry | None = None,
        execution_logger: ExecutionLogger | None = None,
        max_concurrent_agents: int = 5,
        task_timeout_seconds: float = 60.0,
        selection_model: str = "gpt-4",
        selection_timeout_seconds: float = 30.0,
        summary_model: str = "gpt-4",
        strict_agent_selection: bool = False,
        planner_agent_id: str = "planner",
    ):
        self.provider = provider
        self.registry = registry if registry is not None else CapabilityRegistry.with_defaults()
        self.execution_logger = execution_logger or StructlogExecutionLogger()
        self.selector = AgentSelector(
            self.registry,
            provider,
            model=selection_model,
            timeout_seconds=selection_timeout_seconds,
            strict=strict_agent_selection,
        )
        self.runner = TaskRunner(provider, timeout_seconds=task_timeout_seconds)
        self.scheduler = DependencyScheduler(self.execute_task, max_concurrent=max_concurrent_agents)
        self.decomposer = GoalDecomposer(self.registry, provider, planner_id=planner_agent_id)
        self.aggregator = ResultAggregator(provider, summary_model=summary_model)
        self.log = structlog.get_logger().bind(component="orchestrator")

        self._executions = 0
        self._successful_executions = 0
        self._pending_records: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: CompletionProvider | None = None,
        registry: CapabilityRegistry | None = None,
        execution_logger: ExecutionLogger | None = None,
    ) -> "Orchestrator":
        """Build an orchestrator from application settings."""
        return cls(
            provider=provider or get_completion_provider(settings),
            registry=registry if registry is not None else CapabilityRegistry.with_defaults(
                settings.default_model
            ),
            execution_logger=execution_logger,
            max_concurrent_agents=settings.max_concurrent_agents,
            task_timeout_seconds=settings.task_timeout_seconds,
            selection_model=settings.selection_model,
            selection_timeout_seconds=settings.selection_timeout_seconds,
            summary_model=settings.summary_model,
            strict_agent_selection=settings.strict_agent_selection,
            planner_agent_id=settings.planner_agent_id,
        )

    # ------------------------------------------------------------------
    # Agent management
    # ------------------------------------------------------------------

    def register_agent(self, profile: AgentProfile) -> None:
        self.registry.register(profile)

    def unregister_agent(self, agent_id: str) -> bool:
        return self.registry.unregister(agent_id)

    def list_agents(self) -> list[AgentProfile]:
        return self.registry.list()

    # ------------------------------------------------------------------
    # Task orchestration
    # ------------------------------------------------------------------

    async def execute_task(self, task: Task) -> TaskResult:
        """Execute a single task with the best matching agent.

        Never raises for task-level failures; they come back as failed
        results with agent id ``"none"`` when no agent could be selected.
        """
        start = time.monotonic()
        agent: AgentProfile | None = None
        try:
            agent = await self.selector.select(task)
        except AgentSelectionFailed as e:
            result = self._unassigned(task, start, str(e), e.kind)
        else:
            if agent is None:
                error = NoAgentAvailable("No suitable agent found for task")
                result = self._unassigned(task, start, str(error), error.kind)
            else:
                result = await self.runner.run(agent, task)

        self._executions += 1
        if result.status == TaskStatus.SUCCESS:
            self._successful_executions += 1

        self._record(task, agent, result)
        return result

    async def execute_workflow(
        self,
        tasks: list[Task],
        parallel: bool = True,
        stop_on_error: bool = False,
    ) -> ExecutionBatch:
        """Execute a batch of tasks honoring dependencies.

        Args:
            tasks: The batch to run
            parallel: Run up to ``max_concurrent_agents`` tasks per wave;
                when False, one task at a time
            stop_on_error: Stop after the first wave with a failed task

        Returns:
            ExecutionBatch holding every result produced and, if the batch
            could not complete, the batch-level error
        """
        workflow_id = f"wf_{uuid.uuid4().hex[:8]}"
        with LogContext(workflow_id=workflow_id):
            self.log.info(
                "Starting workflow",
                tasks=len(tasks),
                parallel=parallel,
                stop_on_error=stop_on_error,
            )
            batch = await self.scheduler.schedule(
                tasks,
                stop_on_error=stop_on_error,
                parallel=parallel,
            )
            self.log.info(
                "Workflow finished",
                results=len(batch.results),
                succeeded=batch.succeeded,
                error=str(batch.error) if batch.error else None,
            )
        return batch

    async def decompose_goal(
        self,
        goal: str,
        context: dict[str, Any] | None = None,
    ) -> list[Task]:
        """Decompose a goal into tasks; ``[]`` means planning failed."""
        return await self.decomposer.decompose(goal, context)

    async def aggregate_results(
        self,
        results: list[TaskResult],
        strategy: AggregationStrategy | str,
    ) -> AggregateOutput:
        return await self.aggregator.aggregate(results, strategy)

    async def run_goal(
        self,
        goal: str,
        context: dict[str, Any] | None = None,
        strategy: AggregationStrategy | str = AggregationStrategy.SUMMARIZE,
        parallel: bool = True,
        stop_on_error: bool = False,
    ) -> tuple[ExecutionBatch, AggregateOutput]:
        """Decompose ``goal``, execute the tasks and aggregate the results."""
        tasks = await self.decompose_goal(goal, context)
        batch = await self.execute_workflow(tasks, parallel=parallel, stop_on_error=stop_on_error)
        aggregate = await self.aggregate_results(batch.results, strategy)
        return batch, aggregate

    async def flush_execution_logs(self) -> None:
        """Wait for execution records still being delivered."""
        while self._pending_records:
            await asyncio.gather(*list(self._pending_records))

    def cancel_task(self, task_id: str) -> bool:
        """Cancel a running task by id."""
        return self.runner.cancel(task_id)

    def get_stats(self) -> OrchestratorStats:
        """Statistics for this orchestrator instance."""
        return OrchestratorStats(
            total_agents=len(self.registry),
            running_tasks=len(self.runner.running_task_ids()),
            executions=self._executions,
            successful_executions=self._successful_executions,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _unassigned(self, task: Task, start: float, error: str, kind: str) -> TaskResult:
        self.log.warning("No agent for task", task_id=task.id, task_type=task.type, error=error)
        return TaskResult(
            task_id=task.id,
            agent_id=NO_AGENT_ID,
            status=TaskStatus.FAILED,
            duration_seconds=time.monotonic() - start,
            error=error,
            error_kind=kind,
        )

    def _record(
        self,
        task: Task,
        agent: AgentProfile | None,
        result: TaskResult,
    ) -> None:
        record = asyncio.ensure_future(self._deliver_record(task, agent, result))
        self._pending_records.add(record)
        record.add_done_callback(self._pending_records.discard)

    async def _deliver_record(
        self,
        task: Task,
        agent: AgentProfile | None,
        result: TaskResult,
    ) -> None:
        try:
            await self.execution_logger.record(task, agent, result)
        except Exception as e:
            self.log.error("Failed to log task execution", task_id=task.id, error=str(e))
