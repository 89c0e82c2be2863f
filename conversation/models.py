"""
Conversation session data model.

A session holds one user's bounded message history plus the flags the
topic classifier and admin surfaces read.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(Enum):
    """Who produced a message."""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class MessageEntry:
    """Single message in a session history."""
    role: Role
    content: str
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ConversationSession:
    """
    Per-user conversational state.

    `messages` is a FIFO window capped at `max_messages`; `message_count`
    keeps counting after old entries fall out of the window.
    """
    user_id: str
    max_messages: int = 10
    messages: List[MessageEntry] = field(default_factory=list)
    is_insurance_context: bool = False
    created_at: datetime = field(default_factory=utcnow)
    last_activity: datetime = field(default_factory=utcnow)
    last_domain_message: Optional[str] = None
    topics: Set[str] = field(default_factory=set)
    message_count: int = 0
    leases: int = 0

    def append(self, entry: MessageEntry) -> None:
        """Append an entry, dropping the oldest ones past the cap."""
        if self.messages and entry.timestamp < self.messages[-1].timestamp:
            entry.timestamp = self.messages[-1].timestamp
        self.messages.append(entry)
        self.message_count += 1
        if len(self.messages) > self.max_messages:
            del self.messages[: len(self.messages) - self.max_messages]

    def recent_slice(self, n: int) -> List[MessageEntry]:
        """Last n entries, oldest first. Never mutates the history."""
        if n <= 0:
            return []
        return list(self.messages[-n:])

    def touch(self, now: Optional[datetime] = None) -> None:
        self.last_activity = now or utcnow()

    @property
    def last_message(self) -> Optional[MessageEntry]:
        return self.messages[-1] if self.messages else None

    @property
    def is_leased(self) -> bool:
        return self.leases > 0

    def to_summary(self, snippet_length: int = 80) -> Dict[str, Any]:
        """Admin view of the session."""
        last = self.last_message
        return {
            "user_id": self.user_id,
            "first_contact": self.created_at.isoformat(),
            "last_seen": self.last_activity.isoformat(),
            "message_count": self.message_count,
            "topics": sorted(self.topics),
            "last_message": last.content[:snippet_length] if last else None,
            "last_domain_message": self.last_domain_message,
            "is_insurance_context": self.is_insurance_context,
        }

    def to_debug(self, history_length: int = 3) -> Dict[str, Any]:
        """Summary plus the tail of the history."""
        data = self.to_summary()
        data["recent_messages"] = [m.to_dict() for m in self.recent_slice(history_length)]
        return data
