"""Command-line entry point for taskweave."""

import argparse
import asyncio
import json
import sys

import structlog

from .config import get_settings
from .orchestrator import AggregationStrategy, Orchestrator
from .utils.logging import configure_logging, log_operation

logger = structlog.get_logger()


async def run_goal(
    goal: str,
    context: dict | None,
    strategy: str,
    parallel: bool,
    stop_on_error: bool,
) -> dict:
    """Decompose a goal, execute its tasks and aggregate the results."""
    settings = get_settings()
    orchestrator = Orchestrator.from_settings(settings)

    with log_operation("run_goal", logger=logger, goal=goal[:100]) as op:
        batch, aggregate = await orchestrator.run_goal(
            goal,
            context=context,
            strategy=strategy,
            parallel=parallel,
            stop_on_error=stop_on_error,
        )
        op["results"] = len(batch.results)

    await orchestrator.flush_execution_logs()

    stats = orchestrator.get_stats()
    return {
        "batch": batch.to_dict(),
        "aggregate": aggregate.to_dict(),
        "stats": {
            "total_agents": stats.total_agents,
            "executions": stats.executions,
            "success_rate": stats.success_rate,
        },
    }


def list_agents() -> list[dict]:
    """Describe the default agent profiles."""
    settings = get_settings()
    orchestrator = Orchestrator.from_settings(settings)
    return [agent.to_dict() for agent in orchestrator.list_agents()]


def cli():
    """Command-line interface."""
    parser = argparse.ArgumentParser(
        description="Multi-agent task orchestration"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("agents", help="List registered agents")

    run_parser = subparsers.add_parser("run", help="Decompose and execute a goal")
    run_parser.add_argument("goal", help="Free-form goal to accomplish")
    run_parser.add_argument(
        "--context",
        help="JSON object passed to the planner as context"
    )
    run_parser.add_argument(
        "--strategy", "-s",
        choices=[s.value for s in AggregationStrategy],
        default=AggregationStrategy.SUMMARIZE.value,
        help="Aggregation strategy (default: summarize)"
    )
    run_parser.add_argument(
        "--sequential",
        action="store_true",
        help="Run one task at a time"
    )
    run_parser.add_argument(
        "--stop-on-error",
        action="store_true",
        help="Stop after the first wave with a failed task"
    )

    args = parser.parse_args()

    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)

    if args.command == "agents":
        print(json.dumps(list_agents(), indent=2))
        return

    context = None
    if args.context:
        try:
            context = json.loads(args.context)
        except json.JSONDecodeError as e:
            parser.error(f"--context is not valid JSON: {e}")

    result = asyncio.run(run_goal(
        goal=args.goal,
        context=context,
        strategy=args.strategy,
        parallel=not args.sequential,
        stop_on_error=args.stop_on_error,
    ))
    print(json.dumps(result, indent=2, default=str))

    # Exit with error code if the goal could not be completed
    if result["batch"]["error"] or "error" in result["aggregate"]:
        sys.exit(1)


if __name__ == "__main__":
    cli()
