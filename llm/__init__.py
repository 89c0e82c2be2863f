"""
LLM Orchestration Module for the Ammin insurance relay.

This module handles:
- LLM provider abstraction (OpenAI, Bedrock, offline)
- Prompt template and canned reply management
- Per-message orchestration from admission to reply
"""

from .orchestrator import ChatOrchestrator, InboundMessage, OrchestratorResult, Route
from .prompt_templates import PromptTemplates, ReplyType

__all__ = [
    "ChatOrchestrator",
    "InboundMessage",
    "OrchestratorResult",
    "PromptTemplates",
    "ReplyType",
    "Route",
]
