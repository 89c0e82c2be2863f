"""
Special intents answered with fixed replies instead of a completion call.
"""

from enum import Enum
from typing import Optional

from . import keywords


class SpecialIntent(Enum):
    FOUNDER = "founder"
    COMPANY_OVERVIEW = "company_overview"


def detect_special_intent(message: str) -> Optional[SpecialIntent]:
    """Founder questions win over company overview questions."""
    if keywords.contains_any(message, keywords.FOUNDER_KEYWORDS):
        return SpecialIntent.FOUNDER
    if keywords.contains_any(message, keywords.COMPANY_OVERVIEW_KEYWORDS):
        return SpecialIntent.COMPANY_OVERVIEW
    return None
