"""
Chat Orchestrator for the Ammin insurance relay.

Drives one inbound message from session lookup to reply delivery.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

from api.channels.base import ChannelMessage, ChannelProvider
from conversation.language import detect_language
from conversation.models import ConversationSession, MessageEntry, Role
from conversation.session_store import SessionStore
from conversation.special_intents import detect_special_intent
from conversation.topic_classifier import AdmissionDecision, TopicClassifier
from .prompt_templates import PromptTemplates, ReplyType
from .providers.base import CompletionError, CompletionProvider

logger = logging.getLogger(__name__)


class Route(Enum):
    """How an inbound message was answered."""
    TEXT_ONLY = "text_only"
    REJECTED = "rejected"
    SPECIAL = "special"
    COMPLETION = "completion"
    FALLBACK = "fallback"


@dataclass
class InboundMessage:
    """Message received from the messaging platform."""
    user_id: str
    text: str = ""
    message_type: str = "text"
    message_id: Optional[str] = None

    @property
    def is_text(self) -> bool:
        return self.message_type == "text"


@dataclass
class OrchestratorResult:
    """Outcome of handling one inbound message."""
    user_id: str
    route: Route
    reply: str
    admitted: Optional[bool] = None
    rule: Optional[str] = None
    delivered: bool = True
    completion_ms: Optional[float] = None
    evicted_sessions: int = 0
    processing_time_ms: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "route": self.route.value,
            "reply": self.reply,
            "admitted": self.admitted,
            "rule": self.rule,
            "delivered": self.delivered,
            "completion_ms": self.completion_ms,
            "evicted_sessions": self.evicted_sessions,
            "processing_time_ms": self.processing_time_ms,
            "timestamp": self.timestamp,
        }


class ChatOrchestrator:
    """
    Orchestrates the relay pipeline.

    Pipeline:
    1. Opportunistically sweep idle sessions
    2. Get or create the user's session
    3. Record the user message
    4. Classify topic admission
    5. Reject out-of-domain messages
    6. Mark the session as in insurance context
    7. Answer special intents with fixed replies
    8. Otherwise ask the completion provider, with a fixed fallback

    Messages for the same user are handled one at a time; different users
    run concurrently.
    """

    def __init__(
        self,
        session_store: SessionStore,
        classifier: TopicClassifier,
        completion_provider: CompletionProvider,
        channel: Optional[ChannelProvider] = None,
        context_messages: int = 6,
        brand_name: str = "Ammin",
        assistant_name: str = "CorporateAI",
    ):
        """
        Initialize the orchestrator.

        Args:
            session_store: Store owning all conversation sessions
            classifier: Topic admission classifier
            completion_provider: LLM provider used for free-form replies
            channel: Messaging channel; None delivers nowhere (dry run)
            context_messages: Prior history entries sent with each completion
            brand_name: Brand name for prompts
            assistant_name: Assistant persona name for prompts
        """
        self.session_store = session_store
        self.classifier = classifier
        self.completion_provider = completion_provider
        self.channel = channel
        self.context_messages = context_messages
        self.system_prompt = PromptTemplates.get_system_prompt(
            brand_name=brand_name, assistant_name=assistant_name
        )

        # user_id -> [lock, holders and waiters]
        self._user_locks: Dict[str, List[Any]] = {}

    def set_channel(self, channel: Optional[ChannelProvider]):
        """Set the messaging channel used for replies."""
        self.channel = channel

    def set_completion_provider(self, provider: CompletionProvider):
        self.completion_provider = provider

    async def process(self, message: InboundMessage) -> OrchestratorResult:
        """
        Handle one inbound message and deliver the reply.

        Args:
            message: Inbound message

        Returns:
            Orchestrator result
        """
        start_time = time.time()

        evicted = self.session_store.maybe_sweep()

        async with self._user_lock(message.user_id):
            with self.session_store.leased(message.user_id) as session:
                if not message.is_text:
                    result = await self._handle_non_text(session, message)
                else:
                    result = await self._handle_text(session, message.text)

        result.evicted_sessions = evicted
        result.processing_time_ms = round((time.time() - start_time) * 1000, 2)
        logger.info(
            f"Handled message from {message.user_id}: {result.route.value}",
            extra={
                "user_id": message.user_id,
                "route": result.route.value,
                "rule": result.rule,
                "delivered": result.delivered,
                "processing_time_ms": result.processing_time_ms,
            },
        )
        return result

    async def _handle_non_text(
        self, session: ConversationSession, message: InboundMessage
    ) -> OrchestratorResult:
        """Non-text messages get a notice and leave history and context untouched."""
        logger.info(f"Received {message.message_type} message from {session.user_id}")
        reply = PromptTemplates.get_reply(ReplyType.TEXT_ONLY)
        delivered = await self._send(session.user_id, reply)
        return OrchestratorResult(
            user_id=session.user_id,
            route=Route.TEXT_ONLY,
            reply=reply,
            delivered=delivered,
        )

    async def _handle_text(self, session: ConversationSession, text: str) -> OrchestratorResult:
        logger.info(
            f"Received message from {session.user_id}",
            extra={"user_id": session.user_id, "message_length": len(text)},
        )
        session.append(MessageEntry(role=Role.USER, content=text))

        decision = self.classifier.classify(text, session)
        logger.debug(
            f"Admission for {session.user_id}: {decision.rule.value}",
            extra={"user_id": session.user_id, "rule": decision.rule.value, "topics": decision.topics},
        )
        if not decision.admitted:
            session.is_insurance_context = False
            reply = PromptTemplates.get_reply(ReplyType.OUT_OF_DOMAIN)
            delivered = await self._reply(session, reply)
            return self._result(session, Route.REJECTED, reply, decision, delivered)

        session.is_insurance_context = True
        session.last_domain_message = text
        session.topics.update(decision.topics)

        special = detect_special_intent(text)
        if special:
            reply = PromptTemplates.get_special_reply(special, detect_language(text))
            delivered = await self._reply(session, reply)
            return self._result(session, Route.SPECIAL, reply, decision, delivered)

        route = Route.COMPLETION
        completion_start = time.time()
        try:
            reply = await self.completion_provider.agenerate_with_history(
                self._build_completion_messages(session, text),
                system=self.system_prompt,
            )
            if not reply:
                logger.warning(f"Empty completion for {session.user_id}")
                route = Route.FALLBACK
                reply = PromptTemplates.get_reply(ReplyType.EMPTY_COMPLETION)
        except CompletionError as e:
            logger.error(f"Completion failed for {session.user_id}: {e}")
            route = Route.FALLBACK
            reply = PromptTemplates.get_reply(ReplyType.COMPLETION_FALLBACK)
        except Exception:
            logger.exception(f"Unexpected completion error for {session.user_id}")
            route = Route.FALLBACK
            reply = PromptTemplates.get_reply(ReplyType.COMPLETION_FALLBACK)
        completion_ms = round((time.time() - completion_start) * 1000, 2)

        delivered = await self._reply(session, reply)
        result = self._result(session, route, reply, decision, delivered)
        result.completion_ms = completion_ms
        return result

    def _build_completion_messages(
        self, session: ConversationSession, text: str
    ) -> List[Dict[str, str]]:
        """Prior history window plus the current message, oldest first."""
        # The current message is already the last history entry
        prior = session.recent_slice(self.context_messages + 1)[:-1]
        messages = [{"role": entry.role.value, "content": entry.content} for entry in prior]
        messages.append({"role": Role.USER.value, "content": text})
        return messages

    async def _reply(self, session: ConversationSession, reply: str) -> bool:
        """Send a reply and record it in history once delivered."""
        delivered = await self._send(session.user_id, reply)
        if delivered:
            session.append(MessageEntry(role=Role.ASSISTANT, content=reply))
        return delivered

    async def _send(self, user_id: str, reply: str) -> bool:
        if self.channel is None:
            logger.debug(f"No channel configured, reply to {user_id} not sent")
            return True

        response = await self.channel.send_message(ChannelMessage(to=user_id, content=reply))
        if not response.success:
            logger.warning(
                f"Reply to {user_id} was not delivered: {response.error}",
                extra={"user_id": user_id},
            )
        return response.success

    @staticmethod
    def _result(
        session: ConversationSession,
        route: Route,
        reply: str,
        decision: AdmissionDecision,
        delivered: bool,
    ) -> OrchestratorResult:
        return OrchestratorResult(
            user_id=session.user_id,
            route=route,
            reply=reply,
            admitted=decision.admitted,
            rule=decision.rule.value,
            delivered=delivered,
        )

    @asynccontextmanager
    async def _user_lock(self, user_id: str) -> AsyncIterator[None]:
        """
        Hold the user's lock for the block.

        A lock lives only while some handler holds or waits on it, so the
        map never outgrows the number of in-flight users.
        """
        entry = self._user_locks.get(user_id)
        if entry is None:
            entry = self._user_locks[user_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._user_locks[user_id]
