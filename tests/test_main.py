"""Tests for main.py entry point."""

import json
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from taskweave.orchestrator import (
    AggregateOutput,
    AggregationStrategy,
    ExecutionBatch,
    OrchestratorStats,
    TaskResult,
    TaskStatus,
)
from taskweave.orchestrator.errors import AggregationEmpty


def make_orchestrator(aggregate=None):
    batch = ExecutionBatch(tasks=[])
    batch.waves = [["a"]]
    batch.results = [
        TaskResult(task_id="a", agent_id="coder", status=TaskStatus.SUCCESS, output="ok"),
    ]
    aggregate = aggregate or AggregateOutput(strategy=AggregationStrategy.MERGE, value={"a": "ok"})

    orchestrator = MagicMock()
    orchestrator.run_goal = AsyncMock(return_value=(batch, aggregate))
    orchestrator.flush_execution_logs = AsyncMock()
    orchestrator.get_stats.return_value = OrchestratorStats(
        total_agents=6, running_tasks=0, executions=1, successful_executions=1,
    )
    return orchestrator


class TestRunGoal:
    """Tests for run_goal function."""

    @pytest.mark.asyncio
    async def test_run_goal_basic(self, mock_env_vars):
        """Test run_goal returns batch, aggregate and stats."""
        from taskweave.main import run_goal

        orchestrator = make_orchestrator()
        with patch("taskweave.main.Orchestrator.from_settings", return_value=orchestrator):
            result = await run_goal(
                goal="Write docs",
                context={"repo": "x"},
                strategy="merge",
                parallel=True,
                stop_on_error=False,
            )

        assert result["aggregate"] == {"strategy": "merge", "result": {"a": "ok"}}
        assert result["batch"]["waves"] == [["a"]]
        assert result["stats"]["success_rate"] == 100.0
        orchestrator.run_goal.assert_awaited_once_with(
            "Write docs",
            context={"repo": "x"},
            strategy="merge",
            parallel=True,
            stop_on_error=False,
        )
        orchestrator.flush_execution_logs.assert_awaited_once()


class TestListAgents:
    """Tests for list_agents function."""

    def test_list_agents(self, mock_env_vars):
        """The default profiles are described."""
        from taskweave.main import list_agents

        agents = list_agents()

        assert [a["id"] for a in agents][:2] == ["analyst", "coder"]
        assert "code_generation" in agents[1]["capabilities"]


class TestCli:
    """Tests for the command-line interface."""

    def test_agents_command(self, mock_env_vars, capsys):
        """`taskweave agents` prints the registry as JSON."""
        from taskweave.main import cli

        with patch.object(sys, "argv", ["taskweave", "agents"]):
            with patch("taskweave.main.configure_logging"):
                cli()

        agents = json.loads(capsys.readouterr().out)
        assert len(agents) == 6

    def test_run_command(self, mock_env_vars, capsys):
        """`taskweave run` executes the goal with the parsed options."""
        from taskweave.main import cli

        orchestrator = make_orchestrator()
        argv = ["taskweave", "run", "Write docs", "--strategy", "merge", "--sequential",
                "--context", '{"repo": "x"}']
        with patch.object(sys, "argv", argv):
            with patch("taskweave.main.configure_logging"):
                with patch("taskweave.main.Orchestrator.from_settings", return_value=orchestrator):
                    cli()

        output = json.loads(capsys.readouterr().out)
        assert output["aggregate"]["result"] == {"a": "ok"}
        kwargs = orchestrator.run_goal.call_args.kwargs
        assert kwargs["parallel"] is False
        assert kwargs["context"] == {"repo": "x"}

    def test_run_command_failure_exit_code(self, mock_env_vars, capsys):
        """A failed aggregation exits with status 1."""
        from taskweave.main import cli

        failed = AggregateOutput(strategy=AggregationStrategy.SUMMARIZE, error=AggregationEmpty())
        orchestrator = make_orchestrator(aggregate=failed)
        with patch.object(sys, "argv", ["taskweave", "run", "Write docs"]):
            with patch("taskweave.main.configure_logging"):
                with patch("taskweave.main.Orchestrator.from_settings", return_value=orchestrator):
                    with pytest.raises(SystemExit) as exc_info:
                        cli()

        assert exc_info.value.code == 1

    def test_invalid_context(self, mock_env_vars):
        """Malformed --context JSON is a usage error."""
        from taskweave.main import cli

        with patch.object(sys, "argv", ["taskweave", "run", "Goal", "--context", "{oops"]):
            with patch("taskweave.main.configure_logging"):
                with pytest.raises(SystemExit) as exc_info:
                    cli()

        assert exc_info.value.code == 2
