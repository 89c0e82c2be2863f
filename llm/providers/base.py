"""
Completion provider contract.
"""

from typing import Dict, List, Optional, Protocol, runtime_checkable


class RelayError(Exception):
    """Base error for the insurance relay."""


class CompletionError(RelayError):
    """Completion provider was unreachable, timed out or returned an error."""


@runtime_checkable
class CompletionProvider(Protocol):
    """Stateless chat completion over a bounded message list."""

    model_id: str

    async def agenerate_with_history(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
    ) -> str:
        """Return the reply text or raise CompletionError."""
        ...
