"""Dependency scheduler running task batches in waves.

Executes a batch of tasks in dependency order, providing:
- Up-front validation (duplicate ids, dependency cycles, unknown ids)
- Wave-based execution with a concurrency bound per wave
- Deterministic ordering within a wave (priority, then submission order)
- Optional stop-on-error

A wave is a set of tasks whose dependencies are all complete. The whole wave
finishes before the next one starts, so a task never overlaps with anything
it depends on.

Example usage:
    scheduler = DependencyScheduler(run_task=orchestrator.execute_task)

    batch = await scheduler.schedule(tasks, max_concurrent=5)
    if batch.error:
        print(f"Batch halted: {batch.error}")
    for result in batch.results:
        print(result.task_id, result.status)
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Awaitable, Callable

import networkx as nx
import structlog

from .errors import BatchValidationError, DependencyDeadlock
from .models import NO_AGENT_ID, ExecutionBatch, Task, TaskResult, TaskStatus

logger = structlog.get_logger()

RunTask = Callable[[Task], Awaitable[TaskResult]]


def build_dependency_graph(tasks: list[Task]) -> nx.DiGraph:
    """Build a graph with an edge from each dependency to its dependent.

    Dependency ids not present in the batch become nodes flagged
    ``missing=True``.
    """
    graph = nx.DiGraph()
    for task in tasks:
        graph.add_node(task.id, missing=False)
    for task in tasks:
        for dep in task.dependencies:
            if dep not in graph:
                graph.add_node(dep, missing=True)
            graph.add_edge(dep, task.id)
    return graph


def validate_batch(tasks: list[Task]) -> None:
    """Check that a batch can run to completion.

    Raises:
        BatchValidationError: If task ids are duplicated
        DependencyDeadlock: If the batch contains a cycle or references an
            unknown task id; lists every task that could never run
    """
    duplicates = sorted(tid for tid, n in Counter(t.id for t in tasks).items() if n > 1)
    if duplicates:
        raise BatchValidationError(f"Duplicate task ids in batch: {duplicates}")

    graph = build_dependency_graph(tasks)
    missing_nodes = [n for n, is_missing in graph.nodes(data="missing") if is_missing]
    cycles = [sorted(c) for c in nx.simple_cycles(graph)]
    if not missing_nodes and not cycles:
        return

    blocked: set[str] = set()
    for root in missing_nodes:
        blocked |= nx.descendants(graph, root)
    for cycle in cycles:
        blocked.update(cycle)
        for node in cycle:
            blocked |= nx.descendants(graph, node)
    blocked -= set(missing_nodes)

    missing = {
        task.id: [d for d in task.dependencies if d in missing_nodes]
        for task in tasks
        if any(d in missing_nodes for d in task.dependencies)
    }
    raise DependencyDeadlock(
        stalled_task_ids=[t.id for t in tasks if t.id in blocked],
        cycles=cycles,
        missing=missing,
    )


def order_wave(executable: list[Task], positions: dict[str, int]) -> list[Task]:
    """Order executable tasks by descending priority, then submission order."""
    return sorted(executable, key=lambda t: (-t.priority, positions[t.id]))


class DependencyScheduler:
    """Executes task batches wave by wave.

    Args:
        run_task: Coroutine executing a single task; anything it raises is
            recorded as a failed result for that task
        max_concurrent: Default concurrency bound per wave
    """

    def __init__(self, run_task: RunTask, max_concurrent: int = 5):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.run_task = run_task
        self.max_concurrent = max_concurrent
        self.log = structlog.get_logger().bind(component="scheduler")

    async def schedule(
        self,
        tasks: list[Task],
        max_concurrent: int | None = None,
        stop_on_error: bool = False,
        parallel: bool = True,
    ) -> ExecutionBatch:
        """Run ``tasks`` honoring their dependencies.

        Args:
            tasks: The batch; ids must be unique and dependencies must stay
                inside the batch
            max_concurrent: Per-wave concurrency bound (defaults to the
                scheduler's)
            stop_on_error: Stop after the first wave containing a failure
            parallel: When False, run one task per wave

        Returns:
            ExecutionBatch with the waves run, their results, and the
            batch-level error if the batch could not be completed

        Raises:
            ValueError: If max_concurrent is given and less than 1
        """
        if max_concurrent is not None and max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        limit = max_concurrent if max_concurrent is not None else self.max_concurrent
        if not parallel:
            limit = 1

        batch = ExecutionBatch(tasks=list(tasks))

        try:
            validate_batch(batch.tasks)
        except (BatchValidationError, DependencyDeadlock) as e:
            self.log.error("Batch rejected", error=str(e))
            batch.error = e
            return batch

        positions = {task.id: i for i, task in enumerate(batch.tasks)}
        completed: set[str] = set()
        remaining = list(batch.tasks)

        self.log.info(
            "Starting batch execution",
            tasks=len(remaining),
            max_concurrent=limit,
            stop_on_error=stop_on_error,
        )

        while remaining:
            executable = [
                task for task in remaining
                if all(dep in completed for dep in task.dependencies)
            ]

            if not executable:
                stalled = [t.id for t in remaining]
                batch.error = DependencyDeadlock(stalled_task_ids=stalled)
                self.log.error("Unable to resolve task dependencies", stalled=stalled)
                break

            wave = order_wave(executable, positions)[:limit]
            wave_ids = [t.id for t in wave]
            batch.waves.append(wave_ids)
            self.log.info("Executing wave", wave=len(batch.waves), tasks=wave_ids)

            outcomes = await asyncio.gather(
                *(self.run_task(t) for t in wave),
                return_exceptions=True,
            )
            wave_results = [
                self._crashed(task, outcome) if isinstance(outcome, BaseException) else outcome
                for task, outcome in zip(wave, outcomes)
            ]
            batch.results.extend(wave_results)

            completed.update(wave_ids)
            remaining = [t for t in remaining if t.id not in completed]

            if stop_on_error and any(r.status == TaskStatus.FAILED for r in wave_results):
                self.log.warning(
                    "Stopping execution due to failure (stop_on_error=True)",
                    failed=[r.task_id for r in wave_results if r.status == TaskStatus.FAILED],
                )
                break

        self.log.info(
            "Batch execution completed",
            waves=len(batch.waves),
            results=len(batch.results),
            failed=sum(1 for r in batch.results if r.status == TaskStatus.FAILED),
            deadlock=batch.error is not None,
        )
        return batch

    def _crashed(self, task: Task, error: BaseException) -> TaskResult:
        if not isinstance(error, Exception):
            raise error
        self.log.error("Task execution raised", task_id=task.id, error=str(error))
        return TaskResult(
            task_id=task.id,
            agent_id=NO_AGENT_ID,
            status=TaskStatus.FAILED,
            error=str(error) or error.__class__.__name__,
            error_kind=getattr(error, "kind", "provider_error"),
        )
