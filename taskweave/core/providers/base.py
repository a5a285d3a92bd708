"""Base provider abstraction for completion backends.

The orchestrator never talks to a vendor SDK directly. Every
provider-assisted step (agent ranking, task execution, goal decomposition,
summarization) goes through the single ``complete`` method defined here, so
any backend implementing it can be plugged in and tests can use a scripted
fake.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CompletionResponse:
    """Response from a completion request.

    Contains the generated text and token usage.
    """
    text: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    model: str | None = None

    @property
    def total_tokens(self) -> int:
        """Total tokens used in the request/response."""
        return self.prompt_tokens + self.completion_tokens

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "text": self.text,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "model": self.model,
        }


class ProviderError(Exception):
    """Base exception for provider errors.

    Providers that know how many tokens were consumed before the failure
    report them through ``prompt_tokens`` and ``completion_tokens`` so the
    task runner can account for partial usage.
    """

    kind = "provider_error"

    def __init__(
        self,
        message: str,
        prompt_tokens: int = 0,
        completion_tokens: int = 0,
    ):
        super().__init__(message)
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens


class AuthenticationError(ProviderError):
    """Raised when API key is invalid or missing."""
    pass


class RateLimitError(ProviderError):
    """Raised when rate limit is exceeded."""

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class ProviderTimeoutError(ProviderError):
    """Raised when the backend does not answer in time."""
    pass


class MalformedResponseError(ProviderError):
    """Raised when the backend returns a response without usable content."""
    pass


def validate_temperature(temperature: float, min_temp: float = 0.0, max_temp: float = 2.0) -> float:
    """Clamp temperature to the valid range.

    Args:
        temperature: The temperature value to validate
        min_temp: Minimum allowed temperature (default 0.0)
        max_temp: Maximum allowed temperature (default 2.0)

    Returns:
        Clamped temperature value within valid range
    """
    if temperature < min_temp:
        return min_temp
    if temperature > max_temp:
        return max_temp
    return temperature


def mask_api_key(api_key: str | None) -> str:
    """Mask an API key for safe logging/display.

    Args:
        api_key: The API key to mask

    Returns:
        Masked string showing only first 4 and last 4 characters
    """
    if not api_key:
        return "<not set>"
    if len(api_key) <= 12:
        return "*" * len(api_key)
    return f"{api_key[:4]}...{api_key[-4:]}"


class CompletionProvider(ABC):
    """Abstract base class for completion backends.

    Implementations must be cancellable: the orchestrator cancels the
    asyncio task awaiting ``complete`` when a task times out or is
    cancelled by id. Backend timeouts must surface as
    ``ProviderTimeoutError`` rather than hanging.

    Example usage:
        ```python
        provider = OpenAIProvider(api_key="sk-...")

        response = await provider.complete(
            model="gpt-4",
            system_prompt="You are a helpful assistant.",
            user_prompt="Hello, how are you?",
            max_tokens=200,
            temperature=0.7,
        )

        print(response.text)
        ```
    """

    provider_id: str = "base"

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key

    @abstractmethod
    async def complete(
        self,
        model: str,
        system_prompt: str | None,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> CompletionResponse:
        """Send a completion request.

        Args:
            model: Model ID to use for completion
            system_prompt: Optional system prompt
            user_prompt: User prompt
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature

        Returns:
            CompletionResponse with generated text and usage

        Raises:
            AuthenticationError: If API key is invalid
            RateLimitError: If rate limit exceeded
            ProviderTimeoutError: If the backend timed out
            ProviderError: For any other backend failure
        """

    def __repr__(self) -> str:
        """String representation of the provider.

        Note: API key is masked for security - never expose full keys in logs.
        """
        return (
            f"<{self.__class__.__name__}("
            f"provider_id='{self.provider_id}', "
            f"api_key={mask_api_key(self.api_key)})>"
        )
