"""
Conversation State Module for the Ammin insurance relay.

This module handles:
- Per-user session storage and idle eviction
- Bounded message history
- Insurance topic admission
"""

from .language import Language, contains_arabic, detect_language
from .models import ConversationSession, MessageEntry, Role
from .session_store import InMemorySessionStore, SessionStore
from .special_intents import SpecialIntent, detect_special_intent
from .topic_classifier import AdmissionDecision, AdmissionRule, TopicClassifier

__all__ = [
    "AdmissionDecision",
    "AdmissionRule",
    "ConversationSession",
    "InMemorySessionStore",
    "Language",
    "MessageEntry",
    "Role",
    "SessionStore",
    "SpecialIntent",
    "TopicClassifier",
    "contains_arabic",
    "detect_language",
    "detect_special_intent",
]
