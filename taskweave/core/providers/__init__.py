"""Completion provider abstraction for taskweave.

Example usage:
    ```python
    from taskweave.config import get_settings
    from taskweave.core.providers import get_completion_provider

    provider = get_completion_provider(get_settings())
    response = await provider.complete(
        model="gpt-4",
        system_prompt="You are a helpful assistant.",
        user_prompt="Hello!",
        max_tokens=100,
        temperature=0.2,
    )
    print(response.text)
    ```

Configuration:
    Anthropic:
        - TASKWEAVE_PROVIDER=anthropic
        - TASKWEAVE_ANTHROPIC_API_KEY (or ANTHROPIC_API_KEY)

    OpenAI:
        - TASKWEAVE_PROVIDER=openai
        - TASKWEAVE_OPENAI_API_KEY (or OPENAI_API_KEY)
"""

from ...config import ProviderName, Settings
from .anthropic_provider import AnthropicProvider
from .base import (
    AuthenticationError,
    CompletionProvider,
    CompletionResponse,
    MalformedResponseError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    mask_api_key,
    validate_temperature,
)
from .openai_provider import OpenAIProvider


def get_completion_provider(settings: Settings) -> CompletionProvider:
    """Build the completion provider configured in settings."""
    if settings.provider == ProviderName.ANTHROPIC:
        key = settings.anthropic_api_key
        return AnthropicProvider(
            api_key=key.get_secret_value() if key else None,
            timeout=settings.task_timeout_seconds,
        )
    key = settings.openai_api_key
    return OpenAIProvider(
        api_key=key.get_secret_value() if key else None,
        timeout=settings.task_timeout_seconds,
    )


__all__ = [
    # Data classes
    "CompletionResponse",
    # Base class
    "CompletionProvider",
    # Provider implementations
    "AnthropicProvider",
    "OpenAIProvider",
    "get_completion_provider",
    # Helpers
    "mask_api_key",
    "validate_temperature",
    # Exceptions
    "ProviderError",
    "AuthenticationError",
    "RateLimitError",
    "ProviderTimeoutError",
    "MalformedResponseError",
]
