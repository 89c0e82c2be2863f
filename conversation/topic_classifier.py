"""
Topic admission for the insurance relay.

Decides whether an inbound message belongs in the domain-restricted
conversation. Rules are checked in order and the first match decides:

1. Greetings and courtesy terms always pass.
2. A direct domain keyword passes.
3. While the session is in insurance context, a follow-up passes only if
   recent history mentions the domain, the message looks like a
   continuation (cue term or short), and it carries a contextual domain
   word.
4. Everything else is rejected.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from . import keywords
from .models import ConversationSession


class AdmissionRule(Enum):
    """Rule that decided an admission."""
    GREETING = "greeting"
    DOMAIN_KEYWORD = "domain_keyword"
    CONTEXT_CARRY_OVER = "context_carry_over"
    REJECTED = "rejected"


@dataclass
class AdmissionDecision:
    """Result of topic classification."""
    admitted: bool
    rule: AdmissionRule
    topics: List[str] = field(default_factory=list)


class TopicClassifier:
    """
    Keyword-based admission classifier.

    Reads session state, never writes it.
    """

    def __init__(self, recent_window: int = 2, short_message_threshold: int = 30):
        self.recent_window = recent_window
        self.short_message_threshold = short_message_threshold

    def is_admitted(self, message: str, session: Optional[ConversationSession]) -> bool:
        return self.classify(message, session).admitted

    def classify(self, message: str, session: Optional[ConversationSession]) -> AdmissionDecision:
        text = (message or "").lower()

        if keywords.contains_any(text, keywords.GREETING_KEYWORDS):
            return AdmissionDecision(
                admitted=True,
                rule=AdmissionRule.GREETING,
                topics=self._topics(text),
            )

        if keywords.contains_any(text, keywords.DOMAIN_KEYWORDS):
            return AdmissionDecision(
                admitted=True,
                rule=AdmissionRule.DOMAIN_KEYWORD,
                topics=self._topics(text),
            )

        if session is not None and session.is_insurance_context:
            if (
                self.has_recent_domain_context(session)
                and self.is_contextual(text)
                and keywords.contains_any(text, keywords.CONTEXTUAL_DOMAIN_WORDS)
            ):
                return AdmissionDecision(admitted=True, rule=AdmissionRule.CONTEXT_CARRY_OVER)

        return AdmissionDecision(admitted=False, rule=AdmissionRule.REJECTED)

    def has_recent_domain_context(self, session: ConversationSession) -> bool:
        """Any of the last few entries (either role) mentions a domain keyword."""
        return any(
            keywords.contains_any(entry.content, keywords.DOMAIN_KEYWORDS)
            for entry in session.recent_slice(self.recent_window)
        )

    def is_contextual(self, message: str) -> bool:
        """Message carries a follow-up cue or is short enough to be elliptical."""
        return (
            keywords.contains_any(message, keywords.CONTEXT_KEYWORDS)
            or len(message) < self.short_message_threshold
        )

    @staticmethod
    def _topics(text: str) -> List[str]:
        return [topic.value for topic in keywords.topics_in(text)]
