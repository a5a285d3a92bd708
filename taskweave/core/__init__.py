"""Core modules for taskweave."""

from .providers import (
    CompletionProvider,
    CompletionResponse,
    ProviderError,
    get_completion_provider,
)

__all__ = [
    "CompletionProvider",
    "CompletionResponse",
    "ProviderError",
    "get_completion_provider",
]
