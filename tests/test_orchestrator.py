"""Tests for the chat orchestrator pipeline."""

import asyncio
import random
from datetime import timedelta

from conversation.language import Language
from conversation.models import Role
from conversation.session_store import InMemorySessionStore
from conversation.special_intents import SpecialIntent
from llm.orchestrator import ChatOrchestrator, InboundMessage, Route
from llm.prompt_templates import PromptTemplates, ReplyType
from llm.providers.base import CompletionError

from conftest import FakeChannel, FakeProvider

USER = "96170123456"

CHEAPEST = "What's your cheapest car insurance?"
EXPENSIVE = "and the most expensive one?"
OFF_TOPIC = "what's the capital of France?"


def send(orchestrator, *texts, user_id=USER):
    """Process texts in order for one user and return the results."""
    async def run():
        return [await orchestrator.process(InboundMessage(user_id=user_id, text=t)) for t in texts]
    return asyncio.run(run())


def history(store, user_id=USER):
    return [(m.role, m.content) for m in store.get(user_id).messages]


class TestConversationFlow:

    def test_follow_up_then_off_topic(self, orchestrator, store, fake_provider, fake_channel):
        first, second, third = send(orchestrator, CHEAPEST, EXPENSIVE, OFF_TOPIC)
        reply = fake_provider.reply
        out_of_domain = PromptTemplates.get_reply(ReplyType.OUT_OF_DOMAIN)

        assert first.route == Route.COMPLETION
        assert first.rule == "domain_keyword"
        assert second.route == Route.COMPLETION
        assert second.rule == "context_carry_over"
        assert third.route == Route.REJECTED
        assert third.admitted is False
        assert third.reply == out_of_domain

        assert history(store) == [
            (Role.USER, CHEAPEST),
            (Role.ASSISTANT, reply),
            (Role.USER, EXPENSIVE),
            (Role.ASSISTANT, reply),
            (Role.USER, OFF_TOPIC),
            (Role.ASSISTANT, out_of_domain),
        ]
        session = store.get(USER)
        assert session.is_insurance_context is False
        assert session.last_domain_message == EXPENSIVE

        assert fake_channel.texts == [reply, reply, out_of_domain]
        assert all(m.to == USER for m in fake_channel.sent)
        assert len(fake_provider.calls) == 2

    def test_first_message_forwarded_without_prior_history(self, orchestrator, fake_provider):
        send(orchestrator, CHEAPEST)

        call = fake_provider.calls[0]
        assert call["messages"] == [{"role": "user", "content": CHEAPEST}]
        assert "Ammin" in call["system"]

    def test_follow_up_forwarded_with_prior_exchange(self, orchestrator, fake_provider):
        send(orchestrator, CHEAPEST, EXPENSIVE)

        assert fake_provider.calls[1]["messages"] == [
            {"role": "user", "content": CHEAPEST},
            {"role": "assistant", "content": fake_provider.reply},
            {"role": "user", "content": EXPENSIVE},
        ]

    def test_completion_context_is_bounded(self, orchestrator, fake_provider):
        send(orchestrator, *[f"car insurance question {i}" for i in range(6)])

        messages = fake_provider.calls[-1]["messages"]
        assert len(messages) == 7
        assert messages[-1] == {"role": "user", "content": "car insurance question 5"}
        # Six prior entries plus the current message
        assert messages[0] == {"role": "user", "content": "car insurance question 2"}
        assert [m["role"] for m in messages[:-1]] == ["user", "assistant"] * 3

    def test_rejection_clears_context(self, orchestrator, store):
        send(orchestrator, CHEAPEST, OFF_TOPIC)

        # Without the context flag a follow-up no longer carries over
        (result,) = send(orchestrator, "how much?")
        assert result.route == Route.REJECTED
        assert store.get(USER).is_insurance_context is False

    def test_admission_records_topics(self, orchestrator, store):
        send(orchestrator, "car insurance price in Lebanon")

        session = store.get(USER)
        assert session.is_insurance_context is True
        assert session.topics == {"insurance", "auto", "pricing", "lebanon"}
        assert session.last_domain_message == "car insurance price in Lebanon"

    def test_greeting_forwarded(self, orchestrator, fake_provider):
        (result,) = send(orchestrator, "Hello")

        assert result.route == Route.COMPLETION
        assert result.rule == "greeting"
        assert len(fake_provider.calls) == 1


class TestSpecialIntents:

    def test_founder_english(self, orchestrator, store, fake_provider):
        (result,) = send(orchestrator, "Hello, who is Elias Chedid Hanna?")

        expected = PromptTemplates.get_special_reply(SpecialIntent.FOUNDER, Language.ENGLISH)
        assert result.route == Route.SPECIAL
        assert result.reply == expected
        assert fake_provider.calls == []
        assert history(store)[-1] == (Role.ASSISTANT, expected)

    def test_founder_arabic(self, orchestrator, fake_provider):
        (result,) = send(orchestrator, "من هو الياس حنا صاحب شركة التأمين؟")

        assert result.route == Route.SPECIAL
        assert result.reply == PromptTemplates.get_special_reply(SpecialIntent.FOUNDER, Language.ARABIC)
        assert fake_provider.calls == []

    def test_company_overview(self, orchestrator):
        (result,) = send(orchestrator, "What is Ammin?")

        assert result.route == Route.SPECIAL
        assert result.reply == PromptTemplates.get_special_reply(
            SpecialIntent.COMPANY_OVERVIEW, Language.ENGLISH
        )

    def test_special_intent_needs_admission(self, orchestrator, fake_channel):
        (result,) = send(orchestrator, "who is elias")

        assert result.route == Route.REJECTED
        assert fake_channel.texts == [PromptTemplates.get_reply(ReplyType.OUT_OF_DOMAIN)]


class TestCompletionFailures:

    def test_completion_error_falls_back(self, store, classifier, fake_channel):
        provider = FakeProvider(error=CompletionError("timeout"))
        orchestrator = ChatOrchestrator(store, classifier, provider, channel=fake_channel)

        (result,) = send(orchestrator, CHEAPEST)

        fallback = PromptTemplates.get_reply(ReplyType.COMPLETION_FALLBACK)
        assert result.route == Route.FALLBACK
        assert result.reply == fallback
        assert result.completion_ms is not None
        assert history(store)[-1] == (Role.ASSISTANT, fallback)
        assert store.get(USER).is_insurance_context is True

    def test_unexpected_error_falls_back(self, store, classifier, fake_channel):
        provider = FakeProvider(error=RuntimeError("boom"))
        orchestrator = ChatOrchestrator(store, classifier, provider, channel=fake_channel)

        (result,) = send(orchestrator, CHEAPEST)

        assert result.route == Route.FALLBACK
        assert fake_channel.texts == [PromptTemplates.get_reply(ReplyType.COMPLETION_FALLBACK)]

    def test_empty_completion(self, store, classifier, fake_channel):
        orchestrator = ChatOrchestrator(store, classifier, FakeProvider(reply=""), channel=fake_channel)

        (result,) = send(orchestrator, CHEAPEST)

        assert result.route == Route.FALLBACK
        assert result.reply == PromptTemplates.get_reply(ReplyType.EMPTY_COMPLETION)


class TestDelivery:

    def test_undelivered_reply_not_recorded(self, store, classifier, fake_provider):
        orchestrator = ChatOrchestrator(store, classifier, fake_provider, channel=FakeChannel(fail=True))

        (result,) = send(orchestrator, CHEAPEST)

        assert result.delivered is False
        assert history(store) == [(Role.USER, CHEAPEST)]

    def test_dry_run_records_reply(self, store, classifier, fake_provider):
        orchestrator = ChatOrchestrator(store, classifier, fake_provider, channel=None)

        (result,) = send(orchestrator, CHEAPEST)

        assert result.delivered is True
        assert len(history(store)) == 2

    def test_to_dict(self, orchestrator):
        (result,) = send(orchestrator, CHEAPEST)

        data = result.to_dict()
        assert data["route"] == "completion"
        assert data["user_id"] == USER
        assert data["processing_time_ms"] >= 0


class TestNonTextMessages:

    def test_image_gets_text_only_notice(self, orchestrator, store, fake_channel, fake_provider):
        send(orchestrator, CHEAPEST)
        before = history(store)

        async def run():
            return await orchestrator.process(InboundMessage(user_id=USER, message_type="image"))
        result = asyncio.run(run())

        assert result.route == Route.TEXT_ONLY
        assert result.rule is None
        assert fake_channel.texts[-1] == PromptTemplates.get_reply(ReplyType.TEXT_ONLY)
        assert history(store) == before
        assert store.get(USER).is_insurance_context is True
        assert len(fake_provider.calls) == 1

    def test_first_contact_with_non_text_creates_session(self, orchestrator, store):
        async def run():
            return await orchestrator.process(InboundMessage(user_id=USER, message_type="audio"))
        asyncio.run(run())

        session = store.get(USER)
        assert session is not None
        assert session.messages == []


class SlowProvider(FakeProvider):
    """Yields to the event loop mid-completion and tracks overlap."""

    def __init__(self):
        super().__init__()
        self.in_flight = 0
        self.max_in_flight = 0

    async def agenerate_with_history(self, messages, system=None):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        return await super().agenerate_with_history(messages, system)


class TestConcurrency:

    def test_same_user_is_serialized(self, store, classifier, fake_channel):
        provider = SlowProvider()
        orchestrator = ChatOrchestrator(store, classifier, provider, channel=fake_channel)

        async def run():
            await asyncio.gather(
                orchestrator.process(InboundMessage(user_id=USER, text="car insurance one")),
                orchestrator.process(InboundMessage(user_id=USER, text="car insurance two")),
            )
        asyncio.run(run())

        assert provider.max_in_flight == 1
        roles = [role for role, _ in history(store)]
        assert roles == [Role.USER, Role.ASSISTANT, Role.USER, Role.ASSISTANT]

    def test_different_users_run_concurrently(self, store, classifier, fake_channel):
        provider = SlowProvider()
        orchestrator = ChatOrchestrator(store, classifier, provider, channel=fake_channel)

        async def run():
            await asyncio.gather(
                orchestrator.process(InboundMessage(user_id="u1", text="car insurance")),
                orchestrator.process(InboundMessage(user_id="u2", text="car insurance")),
            )
        asyncio.run(run())

        assert provider.max_in_flight == 2
        assert store.size() == 2

    def test_user_locks_released_without_sweeps(self, orchestrator, store, clock):
        for i in range(200):
            send(orchestrator, CHEAPEST, user_id=f"u{i}")
        clock.advance(minutes=31)
        store.sweep_expired()
        send(orchestrator, CHEAPEST, user_id="late")

        assert store.size() == 1
        assert orchestrator._user_locks == {}

    def test_waiting_handler_keeps_lock_until_done(self, store, classifier, fake_channel):
        provider = SlowProvider()
        orchestrator = ChatOrchestrator(store, classifier, provider, channel=fake_channel)

        async def run():
            await asyncio.gather(*[
                orchestrator.process(InboundMessage(user_id=USER, text=f"car insurance {i}"))
                for i in range(3)
            ])
        asyncio.run(run())

        assert provider.max_in_flight == 1
        assert orchestrator._user_locks == {}

    def test_traffic_sweeps_idle_sessions(self, clock, classifier, fake_provider, fake_channel):
        store = InMemorySessionStore(
            idle_threshold=timedelta(minutes=30),
            sweep_probability=1.0,
            clock=clock,
            rng=random.Random(7),
        )
        orchestrator = ChatOrchestrator(store, classifier, fake_provider, channel=fake_channel)

        send(orchestrator, CHEAPEST, user_id="idle")
        clock.advance(minutes=31)
        (result,) = send(orchestrator, CHEAPEST, user_id="active")

        assert result.evicted_sessions == 1
        assert store.get("idle") is None
        assert store.get("active") is not None
