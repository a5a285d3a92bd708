"""Tests for the single-task runner."""

import asyncio

import pytest

from taskweave.core.providers.base import (
    CompletionProvider,
    CompletionResponse,
    ProviderError,
    RateLimitError,
)
from taskweave.orchestrator.models import Task, TaskStatus
from taskweave.orchestrator.task_runner import TaskRunner, build_task_prompt, render_input


class TestBuildTaskPrompt:
    """Tests for task prompt rendering."""

    def test_prompt_contains_description_and_input(self):
        """The prompt carries the description and the JSON input."""
        task = Task(id="t1", type="general", description="Count words", input={"text": "a b"})
        prompt = build_task_prompt(task)

        assert prompt.startswith("TASK: Count words")
        assert '"text": "a b"' in prompt
        assert "INPUT DATA:" in prompt

    def test_mixed_key_types(self):
        """Inputs whose keys cannot be sorted are still rendered."""
        rendered = render_input({1: "x", "b": 2})

        assert '"1": "x"' in rendered
        assert '"b": 2' in rendered

    def test_unencodable_keys_fall_back_to_repr(self):
        """Keys JSON cannot encode are rendered with repr."""
        assert render_input({(1, 2): "pair"}) == "{(1, 2): 'pair'}"


class TestTaskRunner:
    """Tests for TaskRunner.run and cancel."""

    @pytest.mark.asyncio
    async def test_success(self, scripted_provider, coder_profile, task_factory):
        """A completed call becomes a success result with token counts."""
        provider = scripted_provider(responses=[
            CompletionResponse(text="print('hi')", prompt_tokens=12, completion_tokens=3, model="m"),
        ])
        runner = TaskRunner(provider, timeout_seconds=1.0)

        result = await runner.run(coder_profile, task_factory("t1"))

        assert result.status == TaskStatus.SUCCESS
        assert result.agent_id == "coder"
        assert result.output == "print('hi')"
        assert result.tokens.prompt == 12
        assert result.tokens.completion == 3
        assert result.tokens.total == 15
        assert result.error is None
        assert result.duration_seconds >= 0

    @pytest.mark.asyncio
    async def test_uses_agent_parameters(self, provider, coder_profile, task_factory):
        """The provider receives the agent's model configuration."""
        runner = TaskRunner(provider)

        await runner.run(coder_profile, task_factory("t1"))

        call = provider.calls[0]
        assert call["model"] == "test-model"
        assert call["system_prompt"] == "You write code."
        assert call["max_tokens"] == 1000
        assert call["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_provider_error(self, scripted_provider, coder_profile, task_factory):
        """Provider errors become failed results with partial token usage."""
        provider = scripted_provider(responses=[
            ProviderError("upstream broke", prompt_tokens=7, completion_tokens=1),
        ])
        runner = TaskRunner(provider)

        result = await runner.run(coder_profile, task_factory("t1"))

        assert result.status == TaskStatus.FAILED
        assert result.error == "upstream broke"
        assert result.error_kind == "provider_error"
        assert result.tokens.total == 8

    @pytest.mark.asyncio
    async def test_rate_limit_kind(self, scripted_provider, coder_profile, task_factory):
        """Provider error subclasses share the provider_error kind."""
        provider = scripted_provider(responses=[RateLimitError("slow down", retry_after=3)])

        result = await TaskRunner(provider).run(coder_profile, task_factory("t1"))

        assert result.error == "slow down"
        assert result.error_kind == "provider_error"

    @pytest.mark.asyncio
    async def test_unexpected_exception(self, scripted_provider, coder_profile, task_factory):
        """Arbitrary exceptions are captured as provider errors."""
        provider = scripted_provider(responses=[RuntimeError("kaput")])

        result = await TaskRunner(provider).run(coder_profile, task_factory("t1"))

        assert result.status == TaskStatus.FAILED
        assert result.error == "kaput"
        assert result.error_kind == "provider_error"

    @pytest.mark.asyncio
    async def test_timeout(self, scripted_provider, coder_profile, task_factory):
        """A call exceeding the timeout fails with kind timeout."""
        provider = scripted_provider(delay=1.0)
        runner = TaskRunner(provider, timeout_seconds=0.01)

        result = await runner.run(coder_profile, task_factory("slow"))

        assert result.status == TaskStatus.FAILED
        assert result.error_kind == "timeout"
        assert "timed out" in result.error
        assert runner.running_task_ids() == []

    @pytest.mark.asyncio
    async def test_cancel_running_task(self, scripted_provider, coder_profile, task_factory):
        """Cancelling by id turns the in-flight task into a cancelled result."""
        provider = scripted_provider(delay=1.0)
        runner = TaskRunner(provider, timeout_seconds=5.0)

        pending = asyncio.ensure_future(runner.run(coder_profile, task_factory("t1")))
        await asyncio.sleep(0.01)

        assert runner.running_task_ids() == ["t1"]
        assert runner.cancel("t1") is True

        result = await pending
        assert result.status == TaskStatus.FAILED
        assert result.error_kind == "cancelled"
        assert runner.running_task_ids() == []

    @pytest.mark.asyncio
    async def test_cancel_unknown_task(self, provider):
        """Cancelling an id that is not running reports False."""
        runner = TaskRunner(provider)

        assert runner.cancel("nope") is False

    @pytest.mark.asyncio
    async def test_cancel_after_completion(self, provider, coder_profile, task_factory):
        """A finished task can no longer be cancelled."""
        runner = TaskRunner(provider)
        await runner.run(coder_profile, task_factory("t1"))

        assert runner.cancel("t1") is False

    @pytest.mark.asyncio
    async def test_outer_cancellation_cancels_call(self, scripted_provider, coder_profile, task_factory):
        """Cancelling the caller also cancels the provider call."""
        provider = scripted_provider(delay=1.0)
        runner = TaskRunner(provider, timeout_seconds=5.0)

        pending = asyncio.ensure_future(runner.run(coder_profile, task_factory("t1")))
        await asyncio.sleep(0.01)
        pending.cancel()

        with pytest.raises(asyncio.CancelledError):
            await pending
        await asyncio.sleep(0.01)

        assert runner.running_task_ids() == []
        assert provider.in_flight == 0


class EagerFailingProvider(CompletionProvider):
    """Provider whose complete() fails before returning an awaitable."""

    provider_id = "eager"

    def complete(self, model, system_prompt, user_prompt, max_tokens, temperature):
        raise ProviderError("client not ready")


class TestTaskInputs:
    """Tests for unusual task payloads and providers."""

    @pytest.mark.asyncio
    async def test_mixed_key_input_runs(self, provider, coder_profile):
        """A payload with mixed key types still reaches the provider."""
        task = Task(id="mixed", type="code_generation", description="mixed", input={1: "x", "b": 2})

        result = await TaskRunner(provider).run(coder_profile, task)

        assert result.status == TaskStatus.SUCCESS
        assert '"b": 2' in provider.calls[0]["user_prompt"]

    @pytest.mark.asyncio
    async def test_call_that_cannot_start(self, coder_profile, task_factory):
        """Failures before the call is in flight become failed results."""
        runner = TaskRunner(EagerFailingProvider())

        result = await runner.run(coder_profile, task_factory("t1"))

        assert result.status == TaskStatus.FAILED
        assert result.error == "client not ready"
        assert result.error_kind == "provider_error"
        assert runner.running_task_ids() == []
