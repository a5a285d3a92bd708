"""Anthropic completion provider.

Wraps ``anthropic.AsyncAnthropic`` behind the ``CompletionProvider``
interface and translates SDK errors into the provider error hierarchy.
"""

import os
from typing import Any

import structlog

from .base import (
    AuthenticationError,
    CompletionProvider,
    CompletionResponse,
    MalformedResponseError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    validate_temperature,
)

logger = structlog.get_logger(__name__)


class AnthropicProvider(CompletionProvider):
    """Completion provider backed by the Anthropic Messages API."""

    provider_id = "anthropic"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        client: Any = None,
    ):
        super().__init__(api_key or os.environ.get("ANTHROPIC_API_KEY"))
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = client
        self.log = logger.bind(component="anthropic_provider")

    def _get_client(self) -> Any:
        if self._client is None:
            import anthropic

            if not self.api_key:
                raise AuthenticationError("Anthropic API key not configured")
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        return self._client

    async def complete(
        self,
        model: str,
        system_prompt: str | None,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> CompletionResponse:
        client = self._get_client()
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": validate_temperature(temperature, max_temp=1.0),
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = await client.messages.create(**kwargs)
        except Exception as e:
            self._handle_error(e)
            raise

        text_blocks = [
            block.text for block in (response.content or [])
            if getattr(block, "type", "text") == "text"
        ]
        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "input_tokens", 0) or 0
        completion_tokens = getattr(usage, "output_tokens", 0) or 0

        if not text_blocks:
            raise MalformedResponseError(
                "Anthropic response contained no text content",
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
            )

        return CompletionResponse(
            text="".join(text_blocks),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            model=getattr(response, "model", model),
        )

    def _handle_error(self, error: Exception) -> None:
        """Convert Anthropic SDK errors to provider errors.

        Raises:
            Appropriate ProviderError subclass
        """
        import anthropic

        if isinstance(error, ProviderError):
            raise error

        error_str = str(error)

        if isinstance(error, anthropic.AuthenticationError):
            raise AuthenticationError(f"Anthropic authentication failed: {error_str}") from error

        if isinstance(error, anthropic.RateLimitError):
            retry_after = None
            response = getattr(error, "response", None)
            if response is not None:
                header = response.headers.get("retry-after")
                if header:
                    try:
                        retry_after = float(header)
                    except ValueError:
                        retry_after = None
            raise RateLimitError(
                f"Anthropic rate limit exceeded: {error_str}",
                retry_after=retry_after,
            ) from error

        if isinstance(error, anthropic.APITimeoutError):
            raise ProviderTimeoutError(f"Anthropic request timed out: {error_str}") from error

        if isinstance(error, anthropic.APIError):
            self.log.warning("Anthropic API error", error=error_str)
            raise ProviderError(f"Anthropic API error: {error_str}") from error
