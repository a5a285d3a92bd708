"""Capability registry of agent profiles.

This module holds the set of known agent profiles and answers capability
queries for the agent selector. It enables:
- Agent registration (insert or replace by id)
- Unregistration
- Capability-based lookup by case-insensitive substring match

Example usage:
    ```python
    from taskweave.orchestrator.agent_registry import CapabilityRegistry

    registry = CapabilityRegistry.with_defaults()

    for agent in registry.find_by_capability("code"):
        print(f"Found agent: {agent.id} ({agent.name})")
    ```
"""

from __future__ import annotations

import threading
from typing import Iterable

import structlog

from .models import AgentProfile

logger = structlog.get_logger(__name__)


def matches_capability(capabilities: frozenset[str], tag: str) -> bool:
    """Return whether ``tag`` is a case-insensitive substring of any capability.

    An empty tag matches every non-empty capability set.
    """
    needle = tag.lower()
    return any(needle in capability.lower() for capability in capabilities)


def default_profiles(model: str = "gpt-4") -> list[AgentProfile]:
    """Build the built-in agent profiles registered at startup.

    Args:
        model: Model identifier assigned to every default profile
    """
    return [
        AgentProfile(
            id="analyst",
            name="Data Analyst",
            description="Analyzes data, generates insights, and creates reports",
            capabilities=frozenset({"data_analysis", "reporting", "visualization", "statistics"}),
            model=model,
            system_prompt=(
                "You are an expert data analyst. Analyze data thoroughly, identify patterns, "
                "and provide actionable insights. Use statistical methods when appropriate. "
                "Always explain your methodology and reasoning."
            ),
            max_tokens=4000,
            temperature=0.3,
            specializations=frozenset({"sql", "python", "charts"}),
        ),
        AgentProfile(
            id="coder",
            name="Code Assistant",
            description="Writes, reviews, and debugs code across multiple languages",
            capabilities=frozenset({"code_generation", "code_review", "debugging", "refactoring"}),
            model=model,
            system_prompt=(
                "You are an expert software developer. Write clean, efficient, "
                "and well-documented code. Follow established design patterns. "
                "Consider edge cases and error handling."
            ),
            max_tokens=8000,
            temperature=0.1,
            specializations=frozenset({"typescript", "python", "sql", "api"}),
        ),
        AgentProfile(
            id="writer",
            name="Content Writer",
            description="Creates compelling content, documentation, and communications",
            capabilities=frozenset({"content_writing", "documentation", "copywriting", "editing"}),
            model=model,
            system_prompt=(
                "You are an expert content writer. Create engaging, clear, "
                "and well-structured content. Adapt your tone to the target audience. "
                "Ensure accuracy and proper formatting."
            ),
            max_tokens=4000,
            temperature=0.7,
            specializations=frozenset({"marketing", "technical", "email"}),
        ),
        AgentProfile(
            id="researcher",
            name="Research Agent",
            description="Gathers information, synthesizes knowledge, and provides summaries",
            capabilities=frozenset({"research", "summarization", "fact_checking", "synthesis"}),
            model=model,
            system_prompt=(
                "You are an expert researcher. Gather comprehensive information, "
                "verify facts, and synthesize findings into clear summaries. "
                "Cite sources when possible and highlight uncertainty."
            ),
            max_tokens=6000,
            temperature=0.4,
            specializations=frozenset({"web", "academic", "market"}),
        ),
        AgentProfile(
            id="planner",
            name="Strategic Planner",
            description="Creates plans, breaks down tasks, and coordinates strategies",
            capabilities=frozenset({"planning", "task_decomposition", "scheduling", "prioritization"}),
            model=model,
            system_prompt=(
                "You are a strategic planner. Break down complex goals into "
                "actionable steps. Consider dependencies, risks, and resource constraints. "
                "Create clear timelines and milestones."
            ),
            max_tokens=4000,
            temperature=0.5,
            specializations=frozenset({"project", "business", "technical"}),
        ),
        AgentProfile(
            id="reviewer",
            name="Quality Reviewer",
            description="Reviews work, provides feedback, and ensures quality standards",
            capabilities=frozenset({"review", "quality_assurance", "feedback", "validation"}),
            model=model,
            system_prompt=(
                "You are a quality reviewer. Evaluate work against standards, "
                "identify issues, and provide constructive feedback. Be thorough but fair. "
                "Suggest specific improvements."
            ),
            max_tokens=3000,
            temperature=0.2,
            specializations=frozenset({"code", "content", "design"}),
        ),
    ]


class CapabilityRegistry:
    """In-memory registry of agent profiles keyed by id.

    Registration order is preserved and used as the tie-break wherever
    several agents match. Replacing an existing id keeps its original
    position. All access goes through a single re-entrant lock; reads
    return snapshots, so callers never observe a half-applied write.
    """

    def __init__(self, profiles: Iterable[AgentProfile] | None = None) -> None:
        self._agents: dict[str, AgentProfile] = {}
        self._lock = threading.RLock()
        self._log = logger.bind(component="agent_registry")
        for profile in profiles or ():
            self.register(profile)

    @classmethod
    def with_defaults(cls, model: str = "gpt-4") -> "CapabilityRegistry":
        """Create a registry pre-seeded with the built-in profiles."""
        return cls(default_profiles(model))

    def register(self, profile: AgentProfile) -> None:
        """Insert or replace a profile.

        Raises:
            ValueError: If the profile id is empty
        """
        if not profile.id:
            raise ValueError("Agent profile id must be non-empty")

        with self._lock:
            replaced = profile.id in self._agents
            self._agents[profile.id] = profile

        self._log.info(
            "Agent registered",
            agent_id=profile.id,
            agent_name=profile.name,
            capabilities=sorted(profile.capabilities),
            replaced=replaced,
        )

    def unregister(self, agent_id: str) -> bool:
        """Remove an agent from the registry.

        Returns:
            True if the agent was removed, False if not found
        """
        with self._lock:
            profile = self._agents.pop(agent_id, None)

        if profile is None:
            self._log.warning("Attempted to unregister unknown agent", agent_id=agent_id)
            return False

        self._log.info("Agent unregistered", agent_id=agent_id)
        return True

    def get(self, agent_id: str) -> AgentProfile | None:
        """Get a profile by id."""
        with self._lock:
            return self._agents.get(agent_id)

    def list(self) -> list[AgentProfile]:
        """Snapshot of all registered profiles in registration order."""
        with self._lock:
            return list(self._agents.values())

    def find_by_capability(self, tag: str) -> list[AgentProfile]:
        """Find agents whose capabilities contain ``tag`` (case-insensitive).

        Args:
            tag: Capability fragment, usually a task type

        Returns:
            Matching profiles in registration order
        """
        matching = [
            profile for profile in self.list()
            if matches_capability(profile.capabilities, tag)
        ]
        self._log.debug("Discovered agents", capability=tag, count=len(matching))
        return matching

    def __len__(self) -> int:
        with self._lock:
            return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        with self._lock:
            return agent_id in self._agents
