"""OpenAI completion provider.

Wraps ``openai.AsyncOpenAI`` chat completions behind the
``CompletionProvider`` interface.
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


class OpenAIProvider(CompletionProvider):
    """Completion provider backed by the OpenAI chat completions API."""

    provider_id = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        client: Any = None,
    ):
        super().__init__(api_key or os.environ.get("OPENAI_API_KEY"))
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = client
        self.log = logger.bind(component="openai_provider")

    def _get_client(self) -> Any:
        if self._client is None:
            from openai import AsyncOpenAI

            if not self.api_key:
                raise AuthenticationError("OpenAI API key not configured")
            self._client = AsyncOpenAI(
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
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=validate_temperature(temperature),
            )
        except Exception as e:
            self._handle_error(e)
            raise

        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
        completion_tokens = getattr(usage, "completion_tokens", 0) or 0

        if not response.choices:
            raise MalformedResponseError(
                "OpenAI response contained no choices",
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
            )

        return CompletionResponse(
            text=response.choices[0].message.content or "",
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            model=getattr(response, "model", model),
        )

    def _handle_error(self, error: Exception) -> None:
        """Convert OpenAI SDK errors to provider errors.

        Raises:
            Appropriate ProviderError subclass
        """
        from openai import (
            APIError,
            APITimeoutError,
        )
        from openai import (
            AuthenticationError as OpenAIAuthError,
        )
        from openai import (
            RateLimitError as OpenAIRateLimit,
        )

        if isinstance(error, ProviderError):
            raise error

        error_str = str(error)

        if isinstance(error, OpenAIAuthError):
            raise AuthenticationError(f"OpenAI authentication failed: {error_str}") from error

        if isinstance(error, OpenAIRateLimit):
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
                f"OpenAI rate limit exceeded: {error_str}",
                retry_after=retry_after,
            ) from error

        if isinstance(error, APITimeoutError):
            raise ProviderTimeoutError(f"OpenAI request timed out: {error_str}") from error

        if isinstance(error, APIError):
            self.log.warning("OpenAI API error", error=error_str)
            raise ProviderError(f"OpenAI API error: {error_str}") from error
