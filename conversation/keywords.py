"""
Classification vocabularies for the insurance relay.

All terms are lowercase and matched as plain substrings of the lowercased
message. English and Arabic terms live side by side.
"""

from enum import Enum
from typing import Dict, FrozenSet, List


class Topic(Enum):
    """Insurance topics a message can touch on."""
    INSURANCE = "insurance"
    CLAIMS = "claims"
    AUTO = "auto"
    PRICING = "pricing"
    LEBANON = "lebanon"
    COMPANY = "company"


# Domain keywords grouped by topic; DOMAIN_KEYWORDS is their union
TOPIC_KEYWORDS: Dict[Topic, List[str]] = {
    Topic.INSURANCE: ["insurance", "policy", "premium", "coverage", "تأمين"],
    Topic.CLAIMS: ["claim", "deductible", "accident", "حادث"],
    Topic.AUTO: ["car", "vehicle", "auto", "سيارة"],
    Topic.PRICING: ["price", "cost", "سعر"],
    Topic.LEBANON: ["lebanon", "لبنان"],
    Topic.COMPANY: ["ammin", "امّن"],
}

DOMAIN_KEYWORDS: FrozenSet[str] = frozenset(
    keyword for keywords in TOPIC_KEYWORDS.values() for keyword in keywords
)

# Greetings and courtesy terms always pass. Matching is by substring, so short
# terms also fire inside longer words: "hi" admits "this", "which" and
# "history". A bare "ok" is left out, since it would admit "joke" and "book".
GREETING_KEYWORDS: FrozenSet[str] = frozenset({
    "hi", "hello", "hey", "thank", "thanks", "okay",
    "مرحبا", "أهلا", "سلام", "شكرا", "حسنا",
})

# Cues that a message continues the previous exchange
CONTEXT_KEYWORDS: FrozenSet[str] = frozenset({
    "what about", "how about", "what place", "where can", "where to",
    "which one", "tell me more", "continue", "also", "and",
    "أين", "ماذا عن", "كيف", "أيضا", "وأين", "أخبرني المزيد",
})

# Narrower vocabulary a carried-over follow-up must still contain
CONTEXTUAL_DOMAIN_WORDS: FrozenSet[str] = frozenset({
    "where", "how much", "which", "what about", "price", "cost",
    "company", "best", "cheap", "expensive", "recommend",
    "أين", "كم", "أي", "ماذا عن", "سعر", "كلفة", "شركة", "أفضل", "رخيص",
})

# Special intents answered with fixed replies
FOUNDER_KEYWORDS: FrozenSet[str] = frozenset({
    "elias", "chedid", "hanna", "الياس", "شديد", "حنا",
})

COMPANY_OVERVIEW_KEYWORDS: FrozenSet[str] = frozenset({
    "what is ammin", "about ammin", "ما هي أمين", "ما هي امن",
})


def contains_any(text: str, terms) -> bool:
    """True if any term occurs in text (case-insensitive substring)."""
    lowered = text.lower()
    return any(term in lowered for term in terms)


def topics_in(text: str) -> List[Topic]:
    """Topics whose keywords occur in text, in declaration order."""
    lowered = text.lower()
    return [
        topic for topic, keywords in TOPIC_KEYWORDS.items()
        if any(keyword in lowered for keyword in keywords)
    ]
