"""Data model shared by the orchestration components.

Profiles and results are immutable once created. Tasks are plain values
supplied by the caller or produced by the goal decomposer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .errors import OrchestrationError

NO_AGENT_ID = "none"


class TaskStatus(str, Enum):
    """Outcome of a single task execution attempt."""
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"


class AggregationStrategy(str, Enum):
    """How multiple task results are combined."""
    MERGE = "merge"
    SUMMARIZE = "summarize"
    VOTE = "vote"


@dataclass(frozen=True)
class AgentProfile:
    """A registered worker profile.

    An agent is configuration, not a process: executing a task means calling
    the shared completion provider with this profile's model parameters.

    Attributes:
        id: Unique identifier used for registration and selection
        name: Display name
        description: Free-text description shown to the ranking call
        capabilities: Capability tags matched against task types
        model: Model identifier passed to the provider
        system_prompt: System prompt for every task run by this agent
        max_tokens: Maximum output size
        temperature: Sampling temperature
        specializations: Additional descriptive tags
    """

    id: str
    name: str
    description: str = ""
    capabilities: frozenset[str] = field(default_factory=frozenset)
    model: str = "gpt-4"
    system_prompt: str = ""
    max_tokens: int = 4000
    temperature: float = 0.3
    specializations: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        # Accept any iterable of tags but always store frozensets.
        object.__setattr__(self, "capabilities", frozenset(self.capabilities))
        object.__setattr__(self, "specializations", frozenset(self.specializations))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "capabilities": sorted(self.capabilities),
            "model": self.model,
            "system_prompt": self.system_prompt,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "specializations": sorted(self.specializations),
        }


@dataclass
class Task:
    """A unit of work submitted to the orchestrator.

    Attributes:
        id: Caller-supplied identifier, unique within a batch
        type: Type tag, matched against agent capabilities
        description: What the agent should do
        input: Arbitrary structured payload rendered into the prompt
        priority: Higher runs first within a wave; never preempts
        deadline: Optional deadline, informational only
        dependencies: Ids of tasks in the same batch that must run first
    """

    id: str
    type: str
    description: str
    input: dict[str, Any] = field(default_factory=dict)
    priority: int = 5
    deadline: datetime | None = None
    dependencies: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "type": self.type,
            "description": self.description,
            "input": self.input,
            "priority": self.priority,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "dependencies": list(self.dependencies),
        }


@dataclass(frozen=True)
class TokenUsage:
    """Prompt/completion token accounting for one execution attempt."""
    prompt: int = 0
    completion: int = 0

    @property
    def total(self) -> int:
        return self.prompt + self.completion


@dataclass(frozen=True)
class TaskResult:
    """Result of one execution attempt of one task.

    Produced exactly once per attempt and never mutated afterwards. Failed
    attempts carry ``error`` and the taxonomy ``error_kind`` that caused them.
    """

    task_id: str
    agent_id: str
    status: TaskStatus
    output: Any = None
    tokens: TokenUsage = field(default_factory=TokenUsage)
    duration_seconds: float = 0.0
    error: str | None = None
    error_kind: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == TaskStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "task_id": self.task_id,
            "agent_id": self.agent_id,
            "status": self.status.value,
            "output": self.output,
            "tokens": {"prompt": self.tokens.prompt, "completion": self.tokens.completion},
            "duration_seconds": self.duration_seconds,
            "error": self.error,
            "error_kind": self.error_kind,
        }


@dataclass
class ExecutionBatch:
    """Tasks submitted together plus their wave ordering and results.

    Lives for the duration of one workflow execution. ``error`` holds the
    batch-level failure (dependency deadlock or invalid batch), which is
    distinct from the failures of individual tasks recorded in ``results``.
    """

    tasks: list[Task]
    waves: list[list[str]] = field(default_factory=list)
    results: list[TaskResult] = field(default_factory=list)
    error: OrchestrationError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and all(r.succeeded for r in self.results)

    @property
    def completed_task_ids(self) -> list[str]:
        return [r.task_id for r in self.results]

    def raise_for_error(self) -> None:
        """Raise the batch-level error, if any."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "waves": [list(w) for w in self.waves],
            "results": [r.to_dict() for r in self.results],
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass(frozen=True)
class AggregateOutput:
    """Combined output of several task results.

    Exactly one of ``value`` or ``error`` is meaningful: a failed
    aggregation (nothing to aggregate, provider failure) is returned as a
    value rather than raised.
    """

    strategy: AggregationStrategy
    value: Any = None
    votes: dict[str, int] | None = None
    error: Exception | None = None
    source_task_ids: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        data: dict[str, Any] = {"strategy": self.strategy.value}
        if self.error is not None:
            data["error"] = str(self.error)
            return data
        if self.strategy == AggregationStrategy.VOTE:
            data["winner"] = self.value
            data["votes"] = dict(self.votes or {})
        else:
            data["result"] = self.value
        return data


@dataclass(frozen=True)
class OrchestratorStats:
    """Point-in-time statistics for one orchestrator instance."""
    total_agents: int
    running_tasks: int
    executions: int
    successful_executions: int

    @property
    def success_rate(self) -> float:
        if self.executions == 0:
            return 0.0
        return self.successful_executions / self.executions * 100
