"""
OpenAI LLM Provider.
"""

import logging
from typing import List, Dict, Optional

from openai import AsyncOpenAI, OpenAIError

from .base import CompletionError

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """
    OpenAI chat completion provider.

    Each call is stateless; the caller supplies the bounded history.
    """

    DEFAULT_MODEL = "gpt-4-turbo"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout: float = 30.0,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model_id: Model ID
            max_tokens: Maximum tokens
            temperature: Generation temperature
            timeout: Request timeout in seconds
        """
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout) if api_key else AsyncOpenAI(timeout=timeout)
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature

        logger.info(f"OpenAI provider initialized: {model_id}")

    async def agenerate_with_history(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None
    ) -> str:
        """
        Generate response with conversation history.

        Args:
            messages: List of role/content messages, oldest first
            system: System prompt

        Returns:
            Generated response
        """
        formatted = []
        if system:
            formatted.append({"role": "system", "content": system})
        formatted.extend(messages)

        try:
            response = await self._client.chat.completions.create(
                model=self.model_id,
                messages=formatted,
                max_tokens=self.max_tokens,
                temperature=self.temperature
            )
        except OpenAIError as e:
            logger.error(f"OpenAI generation with history failed: {e}")
            raise CompletionError(str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip()
