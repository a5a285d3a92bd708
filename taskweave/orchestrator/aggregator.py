"""Result aggregation strategies.

Combines the successful results of a workflow into a single answer:
    - merge: task id -> output, untouched
    - summarize: provider-synthesized text over all outputs
    - vote: most frequent output by structural equality

Example usage:
    aggregator = ResultAggregator(provider)

    output = await aggregator.aggregate(batch.results, AggregationStrategy.VOTE)
    if output.ok:
        print(output.value, output.votes)
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from ..core.providers.base import CompletionProvider
from .errors import AggregationEmpty
from .models import AggregateOutput, AggregationStrategy, TaskResult, TaskStatus

logger = structlog.get_logger()

SUMMARY_MAX_TOKENS = 2000
SUMMARY_TEMPERATURE = 0.5


def canonical_key(output: Any) -> str:
    """Serialize an output canonically so equal structures compare equal."""
    return json.dumps(output, sort_keys=True, separators=(",", ":"), default=str)


def build_summary_prompt(results: list[TaskResult]) -> str:
    """Build the summarization prompt labeling each output with its task id."""
    sections = "\n\n---\n\n".join(
        f"TASK {r.task_id}:\n{r.output if isinstance(r.output, str) else canonical_key(r.output)}"
        for r in results
    )
    return f"""Summarize the following task results into a cohesive response:

{sections}

Provide a clear, well-organized summary that captures the key points from all results."""


class ResultAggregator:
    """Aggregates task results using one of the supported strategies.

    Args:
        provider: Completion provider used by the summarize strategy
        summary_model: Model for the summarize strategy
    """

    def __init__(self, provider: CompletionProvider, summary_model: str = "gpt-4"):
        self.provider = provider
        self.summary_model = summary_model
        self.log = structlog.get_logger().bind(component="aggregator")

    async def aggregate(
        self,
        results: list[TaskResult],
        strategy: AggregationStrategy | str,
    ) -> AggregateOutput:
        """Aggregate the successful results in ``results``.

        Raises:
            ValueError: If ``strategy`` is not a known strategy name
        """
        strategy = AggregationStrategy(strategy)
        successful = [r for r in results if r.status == TaskStatus.SUCCESS]

        if not successful:
            self.log.warning("Nothing to aggregate", strategy=strategy.value, results=len(results))
            return AggregateOutput(strategy=strategy, error=AggregationEmpty())

        source_ids = tuple(r.task_id for r in successful)
        self.log.info("Aggregating results", strategy=strategy.value, results=len(successful))

        if strategy == AggregationStrategy.MERGE:
            return AggregateOutput(
                strategy=strategy,
                value=self.merge(successful),
                source_task_ids=source_ids,
            )

        if strategy == AggregationStrategy.SUMMARIZE:
            try:
                summary = await self.summarize(successful)
            except Exception as e:
                self.log.error("Summarization failed", error=str(e))
                return AggregateOutput(strategy=strategy, error=e, source_task_ids=source_ids)
            return AggregateOutput(strategy=strategy, value=summary, source_task_ids=source_ids)

        winner, votes = self.vote(successful)
        return AggregateOutput(
            strategy=strategy,
            value=winner,
            votes=votes,
            source_task_ids=source_ids,
        )

    def merge(self, results: list[TaskResult]) -> dict[str, Any]:
        """Map each task id to its output."""
        return {r.task_id: r.output for r in results}

    async def summarize(self, results: list[TaskResult]) -> str:
        """Ask the provider for a synthesis of all outputs."""
        response = await self.provider.complete(
            model=self.summary_model,
            system_prompt=None,
            user_prompt=build_summary_prompt(results),
            max_tokens=SUMMARY_MAX_TOKENS,
            temperature=SUMMARY_TEMPERATURE,
        )
        return response.text

    def vote(self, results: list[TaskResult]) -> tuple[Any, dict[str, int]]:
        """Pick the most frequent output.

        Returns:
            Tuple of (winning output, tally keyed by canonical output)
        """
        votes: dict[str, int] = {}
        first_seen: dict[str, Any] = {}
        for result in results:
            key = canonical_key(result.output)
            votes[key] = votes.get(key, 0) + 1
            first_seen.setdefault(key, result.output)

        # max() keeps the first maximal key, and dicts keep insertion order,
        # so ties go to the candidate encountered first.
        winner_key = max(votes, key=votes.__getitem__)
        return first_seen[winner_key], votes
