"""
Offline provider used when no LLM credentials are configured.
"""

import logging
from typing import Dict, List, Optional

from ..prompt_templates import PromptTemplates

logger = logging.getLogger(__name__)


class OfflineProvider:
    """Rotates through fixed welcome replies instead of calling a model."""

    model_id = "offline"

    async def agenerate_with_history(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None
    ) -> str:
        logger.debug("No LLM configured, returning canned reply")
        return PromptTemplates.next_offline_reply()
