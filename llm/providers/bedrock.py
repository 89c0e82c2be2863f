"""
AWS Bedrock LLM Provider.
"""

import asyncio
import json
import logging
from typing import List, Dict, Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .base import CompletionError

logger = logging.getLogger(__name__)


class BedrockProvider:
    """
    AWS Bedrock LLM provider.

    Supports Claude models via Bedrock.
    """

    DEFAULT_MODEL = "us.anthropic.claude-sonnet-4-20250514-v1:0"

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL,
        region: str = "us-east-1",
        max_tokens: int = 500,
        temperature: float = 0.7,
        client: Optional[Any] = None,
    ):
        """
        Initialize Bedrock provider.

        Args:
            model_id: Bedrock model ID
            region: AWS region
            max_tokens: Maximum tokens for response
            temperature: Generation temperature
            client: Pre-built bedrock-runtime client
        """
        self.model_id = model_id
        self.region = region
        self.max_tokens = max_tokens
        self.temperature = temperature

        self._client = client or boto3.client("bedrock-runtime", region_name=region)
        logger.info(f"Bedrock provider initialized: {model_id} in {region}")

    def generate_with_history(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None
    ) -> str:
        """
        Generate response with conversation history.

        Claude requires the first message to come from the user, so any
        leading assistant turns are dropped.
        """
        turns = list(messages)
        while turns and turns[0]["role"] != "user":
            turns.pop(0)

        body = {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [
                {
                    "role": msg["role"],
                    "content": [{"type": "text", "text": msg["content"]}]
                }
                for msg in turns
            ]
        }

        if system:
            body["system"] = system

        try:
            response = self._client.invoke_model(
                modelId=self.model_id,
                body=json.dumps(body),
                contentType="application/json",
                accept="application/json",
            )
            response_body = json.loads(response["body"].read())
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Bedrock API error: {e}")
            raise CompletionError(str(e)) from e

        if "content" in response_body and response_body["content"]:
            return response_body["content"][0]["text"].strip()

        logger.warning("Empty response from Bedrock")
        return ""

    async def agenerate_with_history(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None
    ) -> str:
        """Bedrock has no native async client, so run the call in a thread."""
        return await asyncio.to_thread(self.generate_with_history, messages, system)
