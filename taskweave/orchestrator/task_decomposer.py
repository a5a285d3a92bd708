"""Goal decomposer turning free-form goals into task batches.

Uses the registered planner agent to break a high-level goal into
structured ``Task`` objects with:
- Task types matched later against agent capabilities
- Dependency relationships between the produced tasks
- Priorities used as a tie-break during scheduling

An empty decomposition means planning failed, not that the goal needs no
work: provider errors and unparseable replies both yield ``[]``.

Example usage:
    decomposer = GoalDecomposer(registry, provider)

    tasks = await decomposer.decompose(
        "Launch a product landing page",
        context={"audience": "developers"},
    )
    for task in tasks:
        print(f"{task.id}: {task.description} (depends on {task.dependencies})")
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from ..core.providers.base import CompletionProvider
from .agent_registry import CapabilityRegistry
from .errors import NoAgentAvailable
from .models import Task

logger = structlog.get_logger()

DEFAULT_TASK_TYPE = "general"
DEFAULT_PRIORITY = 5


def extract_json_array(text: str) -> list[Any] | None:
    """Return the first well-formed JSON array embedded in ``text``.

    Each ``[`` is tried in turn as the start of a JSON document; the first
    one that decodes to a list wins. Markdown fences and surrounding prose
    are ignored.
    """
    decoder = json.JSONDecoder()
    start = text.find("[")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, list):
            return value
        start = text.find("[", start + 1)
    return None


def _coerce_priority(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return DEFAULT_PRIORITY


def task_from_dict(data: dict[str, Any], index: int) -> Task:
    """Build a Task from one planner item, filling missing fields."""
    dependencies = data.get("dependencies") or []
    if isinstance(dependencies, str):
        dependencies = [dependencies]

    task_input = data.get("input")
    if not isinstance(task_input, dict):
        task_input = {} if task_input is None else {"value": task_input}

    return Task(
        id=str(data.get("id") or f"task_{index + 1}"),
        type=str(data.get("type") or DEFAULT_TASK_TYPE),
        description=str(data.get("description") or ""),
        input=task_input,
        priority=_coerce_priority(data.get("priority", DEFAULT_PRIORITY)),
        dependencies=[str(d) for d in dependencies],
    )


class GoalDecomposer:
    """Breaks goals into task batches via the planner agent.

    Args:
        registry: Registry holding the planner profile
        provider: Completion provider
        planner_id: Id of the agent used for planning
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        provider: CompletionProvider,
        planner_id: str = "planner",
    ):
        self.registry = registry
        self.provider = provider
        self.planner_id = planner_id
        self.log = structlog.get_logger().bind(component="task_decomposer")

    async def decompose(
        self,
        goal: str,
        context: dict[str, Any] | None = None,
    ) -> list[Task]:
        """Ask the planner to decompose ``goal`` into tasks.

        Args:
            goal: Natural language goal
            context: Optional structured context passed to the planner

        Returns:
            List of tasks; empty when planning failed

        Raises:
            NoAgentAvailable: If the planner agent is not registered
        """
        planner = self.registry.get(self.planner_id)
        if planner is None:
            raise NoAgentAvailable(f"Planner agent '{self.planner_id}' not available")

        self.log.info("Decomposing goal", goal=goal[:100], planner=planner.id)

        try:
            response = await self.provider.complete(
                model=planner.model,
                system_prompt=planner.system_prompt,
                user_prompt=self._build_decomposition_prompt(goal, context),
                max_tokens=planner.max_tokens,
                temperature=planner.temperature,
            )
        except Exception as e:
            self.log.error("Planner call failed", error=str(e))
            return []

        tasks = self._parse_tasks(response.text)
        self.log.info(
            "Goal decomposed",
            task_count=len(tasks),
            tasks=[t.id for t in tasks],
        )
        return tasks

    def _build_decomposition_prompt(
        self,
        goal: str,
        context: dict[str, Any] | None,
    ) -> str:
        """Build the prompt for the planner."""
        context_text = json.dumps(context, default=str) if context else "None provided"
        return f"""Decompose the following goal into specific, actionable tasks:

GOAL: {goal}

CONTEXT: {context_text}

Return a JSON array of tasks with the following structure:
[
  {{
    "id": "unique_id",
    "type": "task_type",
    "description": "clear description",
    "input": {{"key": "value"}},
    "priority": 1-10,
    "dependencies": ["other_task_ids"]
  }}
]

Order tasks by priority and include appropriate dependencies."""

    def _parse_tasks(self, content: str) -> list[Task]:
        """Parse the planner reply into tasks, returning [] on failure."""
        items = extract_json_array(content)
        if items is None:
            self.log.error("Failed to parse decomposed tasks", content=content[:500])
            return []

        tasks = []
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                self.log.debug("Skipping non-object planner item", index=index)
                continue
            tasks.append(task_from_dict(item, index))
        return tasks
