"""
LLM Provider implementations.
"""

from .base import CompletionError, CompletionProvider, RelayError
from .bedrock import BedrockProvider
from .offline import OfflineProvider
from .openai_provider import OpenAIProvider

__all__ = [
    "BedrockProvider",
    "CompletionError",
    "CompletionProvider",
    "OfflineProvider",
    "OpenAIProvider",
    "RelayError",
]
