"""Shared fixtures for insurance relay tests."""

import os
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

# Ensure we use test/mock settings
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ["ADMIN_API_KEY"] = ""
os.environ["SESSION_SWEEP_PROBABILITY"] = "0"

from api.channels.base import ChannelProvider, ChannelResponse  # noqa: E402
from conversation.session_store import InMemorySessionStore  # noqa: E402
from conversation.topic_classifier import TopicClassifier  # noqa: E402
from llm.orchestrator import ChatOrchestrator  # noqa: E402


class FakeChannel(ChannelProvider):
    """Records outbound messages instead of calling WhatsApp."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_message(self, message):
        self.sent.append(message)
        if self.fail:
            return ChannelResponse(success=False, error="send failed")
        return ChannelResponse(success=True, message_id=f"wamid.{len(self.sent)}")

    async def health_check(self):
        return not self.fail

    @property
    def texts(self):
        return [m.content for m in self.sent]


class FakeProvider:
    """Completion provider returning a fixed reply or raising."""

    model_id = "fake-model"

    def __init__(self, reply: str = "Our cheapest car insurance starts at $250 a year.", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def agenerate_with_history(self, messages, system=None):
        self.calls.append({"messages": list(messages), "system": system})
        if self.error:
            raise self.error
        return self.reply


class FakeClock:
    """Controllable clock for session timing."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemorySessionStore(
        idle_threshold=timedelta(minutes=30),
        max_messages=10,
        sweep_probability=0,
        clock=clock,
    )


@pytest.fixture
def classifier():
    return TopicClassifier(recent_window=2, short_message_threshold=30)


@pytest.fixture
def fake_channel():
    return FakeChannel()


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def orchestrator(store, classifier, fake_provider, fake_channel):
    return ChatOrchestrator(
        session_store=store,
        classifier=classifier,
        completion_provider=fake_provider,
        channel=fake_channel,
        context_messages=6,
    )


@pytest.fixture
def client():
    """Create a FastAPI test client with services started."""
    from api.main import app
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def relay(client):
    """Running app wired to fake channel and provider, with an empty store."""
    from api.services import get_services

    services = get_services()
    channel = FakeChannel()
    provider = FakeProvider()
    services.orchestrator.set_channel(channel)
    services.orchestrator.set_completion_provider(provider)
    services.session_store.clear()
    services.session_store.sweep_probability = 0

    yield SimpleNamespace(client=client, services=services, channel=channel, provider=provider)

    services.session_store.clear()


def whatsapp_payload(*messages, field="messages"):
    """Build a WhatsApp Business webhook delivery."""
    return {
        "object": "whatsapp_business_account",
        "entry": [{
            "id": "1234567890",
            "changes": [{
                "field": field,
                "value": {
                    "messaging_product": "whatsapp",
                    "metadata": {"phone_number_id": "111"},
                    "messages": list(messages),
                },
            }],
        }],
    }


def text_message(sender: str, body: str, message_id: str = "wamid.in"):
    return {"from": sender, "id": message_id, "type": "text", "text": {"body": body}}
