"""Orchestrator package for multi-agent task execution.

This package provides:
- Orchestrator: Public surface for tasks, workflows, goals and aggregation
- CapabilityRegistry: Agent profiles with capability lookup
- AgentSelector: Capability match with provider-assisted ranking fallback
- DependencyScheduler: Wave-based execution honoring task dependencies
  - Dependency cycle and unknown-reference detection
  - Bounded concurrency per wave
  - Stop-on-error
- TaskRunner: Single task execution with timeout and cancellation by id
- GoalDecomposer: Planner-driven goal decomposition
- ResultAggregator: merge, summarize and vote strategies
"""

from .agent_registry import CapabilityRegistry, default_profiles, matches_capability
from .agent_selector import AgentSelector
from .aggregator import ResultAggregator
from .errors import (
    AgentSelectionFailed,
    AggregationEmpty,
    BatchValidationError,
    DependencyDeadlock,
    NoAgentAvailable,
    OrchestrationError,
    TaskCancelled,
    TaskTimeout,
)
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
    TokenUsage,
)
from .orchestrator import Orchestrator
from .scheduler import DependencyScheduler, validate_batch
from .task_decomposer import GoalDecomposer
from .task_runner import TaskRunner

__all__ = [
    # Orchestration surface
    "Orchestrator",
    # Components
    "CapabilityRegistry",
    "AgentSelector",
    "DependencyScheduler",
    "TaskRunner",
    "GoalDecomposer",
    "ResultAggregator",
    "ExecutionLogger",
    "StructlogExecutionLogger",
    # Helpers
    "default_profiles",
    "matches_capability",
    "validate_batch",
    # Models
    "NO_AGENT_ID",
    "AgentProfile",
    "AggregateOutput",
    "AggregationStrategy",
    "ExecutionBatch",
    "OrchestratorStats",
    "Task",
    "TaskResult",
    "TaskStatus",
    "TokenUsage",
    # Errors
    "OrchestrationError",
    "NoAgentAvailable",
    "AgentSelectionFailed",
    "TaskTimeout",
    "TaskCancelled",
    "DependencyDeadlock",
    "BatchValidationError",
    "AggregationEmpty",
]
