"""
Service initialization and dependency injection for the relay API.

Creates and manages all service instances used by the API.
"""

import logging
from datetime import timedelta
from typing import Optional

from config.settings import get_settings, Settings
from conversation.session_store import InMemorySessionStore
from conversation.topic_classifier import TopicClassifier
from llm.orchestrator import ChatOrchestrator
from llm.providers import BedrockProvider, OfflineProvider, OpenAIProvider
from .channels.base import ChannelProvider
from .channels.whatsapp import MetaCloudWhatsApp

logger = logging.getLogger(__name__)


class Services:
    """Container for all application services."""

    def __init__(self):
        self.settings: Optional[Settings] = None
        self.session_store: Optional[InMemorySessionStore] = None
        self.classifier: Optional[TopicClassifier] = None
        self.completion_provider = None
        self.channel: Optional[ChannelProvider] = None
        self.orchestrator: Optional[ChatOrchestrator] = None
        self._initialized = False

    def initialize(self):
        """Initialize all services."""
        if self._initialized:
            return

        self.settings = get_settings()
        logger.info(f"Initializing services with provider: {self.settings.llm_provider}")

        self._init_session_store()
        self._init_classifier()
        self._init_channel()
        try:
            self._init_completion_provider()
        except Exception as e:
            logger.error(f"Completion provider initialization failed: {e}")
            logger.warning("Falling back to offline replies")
            self.completion_provider = OfflineProvider()
        self._init_orchestrator()
        self._initialized = True
        logger.info("All services initialized successfully")

    def _init_session_store(self):
        s = self.settings
        self.session_store = InMemorySessionStore(
            idle_threshold=timedelta(seconds=s.session_idle_seconds),
            max_messages=s.history_max_messages,
            sweep_probability=s.session_sweep_probability,
        )

    def _init_classifier(self):
        self.classifier = TopicClassifier(
            recent_window=self.settings.classifier_recent_window,
            short_message_threshold=self.settings.short_message_threshold,
        )

    def _init_channel(self):
        """Initialize WhatsApp channel."""
        s = self.settings

        if not s.whatsapp_enabled:
            logger.warning("WHATSAPP_TOKEN or PHONE_NUMBER_ID not set, replies will not be sent")
            return

        self.channel = MetaCloudWhatsApp(
            api_token=s.whatsapp_token,
            phone_number_id=s.phone_number_id,
            api_version=s.whatsapp_api_version,
            timeout=s.whatsapp_timeout_seconds,
        )
        logger.info("WhatsApp channel ready")

    def _init_completion_provider(self):
        """Initialize the LLM provider."""
        s = self.settings

        if s.is_bedrock:
            self.completion_provider = BedrockProvider(
                model_id=s.bedrock_llm_model_id,
                region=s.aws_region,
                max_tokens=s.max_tokens,
                temperature=s.temperature,
            )
        elif s.openai_api_key:
            self.completion_provider = OpenAIProvider(
                api_key=s.openai_api_key,
                model_id=s.openai_llm_model,
                max_tokens=s.max_tokens,
                temperature=s.temperature,
                timeout=s.completion_timeout_seconds,
            )
        else:
            logger.warning("OPENAI_API_KEY not set, using offline replies")
            self.completion_provider = OfflineProvider()

    def _init_orchestrator(self):
        """Initialize the chat orchestrator."""
        s = self.settings

        self.orchestrator = ChatOrchestrator(
            session_store=self.session_store,
            classifier=self.classifier,
            completion_provider=self.completion_provider,
            channel=self.channel,
            context_messages=s.completion_context_messages,
            brand_name=s.brand_name,
            assistant_name=s.assistant_name,
        )
        logger.info("Chat orchestrator ready")

    @property
    def is_ready(self) -> bool:
        return self._initialized and self.orchestrator is not None

    def health(self) -> dict:
        """Return health status of all services."""
        return {
            "initialized": self._initialized,
            "whatsapp": self.channel is not None,
            "llm": getattr(self.completion_provider, "model_id", None),
            "orchestrator": self.orchestrator is not None,
            "active_sessions": self.session_store.size() if self.session_store else 0,
        }


# Singleton
_services = Services()


def get_services() -> Services:
    """Get the global services instance."""
    return _services


def initialize_services():
    """Initialize all services (called at startup)."""
    _services.initialize()
