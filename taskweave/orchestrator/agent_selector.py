"""Agent selection for tasks.

Selection is two-tier: a direct capability match on the task type is fast
and deterministic; only when nothing matches does the selector pay for a
provider-assisted ranking call.
"""

from __future__ import annotations

import asyncio

import structlog

from ..core.providers.base import CompletionProvider
from .agent_registry import CapabilityRegistry
from .errors import AgentSelectionFailed
from .models import AgentProfile, Task

logger = structlog.get_logger()

SELECTION_MAX_TOKENS = 50


def build_selection_prompt(task: Task, agents: list[AgentProfile]) -> str:
    """Build the ranking prompt listing every registered agent."""
    agent_lines = "\n".join(
        f"- {a.id}: {a.description} (capabilities: {', '.join(sorted(a.capabilities))})"
        for a in agents
    )
    return f"""Select the best agent for this task:

TASK: {task.description}
TYPE: {task.type}

AVAILABLE AGENTS:
{agent_lines}

Return only the agent ID that best matches this task."""


class AgentSelector:
    """Picks the registered agent best suited to a task.

    Args:
        registry: Registry to select from
        provider: Completion provider used for the ranking call
        model: Model for the ranking call
        timeout_seconds: Timeout for the ranking call
        strict: Raise ``AgentSelectionFailed`` instead of falling back to
            the first registered agent when the ranking call fails
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        provider: CompletionProvider,
        model: str = "gpt-4",
        timeout_seconds: float = 30.0,
        strict: bool = False,
    ):
        self.registry = registry
        self.provider = provider
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.strict = strict
        self.log = structlog.get_logger().bind(component="agent_selector")

    async def select(self, task: Task) -> AgentProfile | None:
        """Select an agent for ``task``.

        Returns:
            The chosen profile, or None when the registry is empty

        Raises:
            AgentSelectionFailed: In strict mode, when the ranking call
                fails or names an unregistered agent
        """
        matching = self.registry.find_by_capability(task.type)
        if matching:
            self.log.debug(
                "Selected agent by capability",
                task_id=task.id,
                task_type=task.type,
                agent_id=matching[0].id,
            )
            return matching[0]

        agents = self.registry.list()
        if not agents:
            self.log.warning("No agents registered", task_id=task.id)
            return None

        try:
            response = await asyncio.wait_for(
                self.provider.complete(
                    model=self.model,
                    system_prompt=None,
                    user_prompt=build_selection_prompt(task, agents),
                    max_tokens=SELECTION_MAX_TOKENS,
                    temperature=0.0,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            return self._fallback(task, agents, "ranking call timed out")
        except Exception as e:
            return self._fallback(task, agents, f"ranking call failed: {e}")

        selected_id = response.text.strip().lower()
        for agent in agents:
            if agent.id.lower() == selected_id:
                self.log.info(
                    "Selected agent by ranking",
                    task_id=task.id,
                    task_type=task.type,
                    agent_id=agent.id,
                )
                return agent

        return self._fallback(task, agents, f"ranking returned unknown agent {selected_id!r}")

    def _fallback(
        self,
        task: Task,
        agents: list[AgentProfile],
        reason: str,
    ) -> AgentProfile:
        if self.strict:
            raise AgentSelectionFailed(f"No agent selected for task {task.id}: {reason}")

        self.log.warning(
            "Falling back to first registered agent",
            task_id=task.id,
            reason=reason,
            agent_id=agents[0].id,
        )
        return agents[0]
