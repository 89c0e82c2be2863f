"""
Reply language detection.
"""

import re
from enum import Enum

ARABIC_SCRIPT = re.compile(r"[\u0600-\u06FF]")


class Language(Enum):
    ENGLISH = "en"
    ARABIC = "ar"


def contains_arabic(text: str) -> bool:
    """True if any character falls in the Arabic Unicode block."""
    return bool(ARABIC_SCRIPT.search(text or ""))


def detect_language(text: str) -> Language:
    return Language.ARABIC if contains_arabic(text) else Language.ENGLISH
