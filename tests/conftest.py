"""Shared fixtures for taskweave tests."""

import asyncio
import re

import pytest

from taskweave.core.providers.base import CompletionProvider, CompletionResponse
from taskweave.orchestrator import (
    AgentProfile,
    CapabilityRegistry,
    Orchestrator,
    Task,
)


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


TASK_LINE = re.compile(r"^TASK: (.*)$", re.MULTILINE)


class ScriptedProvider(CompletionProvider):
    """Fake completion provider driven by a script.

    Responses are taken from ``responses`` in order, or produced by
    ``handler(call)`` when given. A response may be a string, a
    ``CompletionResponse``, or an exception instance to raise. Every call
    is recorded, along with start/end events keyed by the ``TASK:`` line
    of the prompt, and the peak number of concurrent calls.
    """

    provider_id = "scripted"

    def __init__(self, responses=None, handler=None, delay=0.0, delays=None):
        super().__init__(api_key=None)
        self._responses = list(responses or [])
        self.handler = handler
        self.delay = delay
        self.delays = delays or {}
        self.calls = []
        self.events = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def complete(self, model, system_prompt, user_prompt, max_tokens, temperature):
        match = TASK_LINE.search(user_prompt)
        key = match.group(1) if match else None
        call = {
            "model": model,
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "task": key,
        }
        self.calls.append(call)
        self.events.append(("start", key))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(key, self.delay)
            if delay:
                await asyncio.sleep(delay)

            if self.handler is not None:
                value = self.handler(call)
            elif self._responses:
                value = self._responses.pop(0)
            else:
                value = f"done: {key}"

            if isinstance(value, BaseException):
                raise value
            if isinstance(value, CompletionResponse):
                return value
            return CompletionResponse(text=value, prompt_tokens=10, completion_tokens=5, model=model)
        finally:
            self.in_flight -= 1
            self.events.append(("end", key))


@pytest.fixture
def scripted_provider():
    """Factory for scripted fake providers."""
    return ScriptedProvider


@pytest.fixture
def provider():
    """Scripted provider answering every task with ``done: <description>``."""
    return ScriptedProvider()


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("TASKWEAVE_PROVIDER", "openai")
    monkeypatch.setenv("TASKWEAVE_OPENAI_API_KEY", "sk-test-openai-key")
    monkeypatch.setenv("TASKWEAVE_ANTHROPIC_API_KEY", "sk-ant-test-key-12345")
    monkeypatch.setenv("TASKWEAVE_MAX_CONCURRENT_AGENTS", "3")


@pytest.fixture
def coder_profile():
    """A single code-generation agent."""
    return AgentProfile(
        id="coder",
        name="Code Assistant",
        description="Writes code",
        capabilities={"code_generation", "debugging"},
        model="test-model",
        system_prompt="You write code.",
        max_tokens=1000,
        temperature=0.1,
    )


@pytest.fixture
def registry():
    """Registry seeded with the built-in profiles."""
    return CapabilityRegistry.with_defaults(model="test-model")


@pytest.fixture
def orchestrator(provider, registry):
    """Orchestrator over the scripted provider and default registry."""
    return Orchestrator(
        provider=provider,
        registry=registry,
        max_concurrent_agents=2,
        task_timeout_seconds=5.0,
    )


def make_task(task_id, deps=None, task_type="code_generation", priority=5, description=None):
    """Build a task whose prompt carries ``TASK: <task_id>``."""
    return Task(
        id=task_id,
        type=task_type,
        description=description or task_id,
        dependencies=list(deps or []),
        priority=priority,
    )


@pytest.fixture
def task_factory():
    """Factory for tasks keyed by their id."""
    return make_task
