import asyncio

import pytest

from legal_clarify.domain.lifecycle import ChatState
from legal_clarify.domain.models import ConversationTurn
from legal_clarify.llm_integration.exceptions import (
    ConversationBusyError, InvalidConversationError, QuotaExceededError
)
from legal_clarify.services.chat_session import ChatSession, filter_valid_turns

from conftest import FakeGeminiClient


async def collect(stream):
    return [fragment async for fragment in stream]


class ScriptedClient:
    """Replies to the n-th question with replies[n], each taking delays[n] seconds."""

    def __init__(self, replies, delays):
        self.replies = replies
        self.delays = delays
        self.calls = 0

    async def stream_chat_async(self, system, turns):
        index = self.calls
        self.calls += 1
        await asyncio.sleep(self.delays[index])
        yield self.replies[index]


class TestFilterValidTurns:

    def test_drops_malformed_messages(self):
        messages = [
            {"role": "user", "content": "Hi"},
            {"content": "no role"},
            {"role": "assistant"},
            {"role": "assistant", "content": "   "},
            {"role": "system", "content": "unknown role"},
            "not a dict",
            None,
            {"role": "model", "content": "Hello!"},
        ]
        assert filter_valid_turns(messages) == [
            ConversationTurn(role="user", content="Hi"),
            ConversationTurn(role="assistant", content="Hello!"),
        ]

    def test_accepts_ui_parts(self):
        messages = [{
            "role": "user",
            "parts": [{"type": "text", "text": "What is "}, {"type": "file", "url": "x"}, {"type": "text", "text": "a lien?"}],
        }]
        assert filter_valid_turns(messages) == [ConversationTurn(role="user", content="What is a lien?")]


class TestChatSession:

    @pytest.mark.asyncio
    async def test_streams_fragments_and_records_reply(self):
        client = FakeGeminiClient(fragments=["The rent ", "is $500."])
        session = ChatSession(client, document_context="Full Document Text:\nLEASE")

        fragments = await collect(session.send("How much is rent?"))

        assert fragments == ["The rent ", "is $500."]
        assert session.turns == [
            ConversationTurn(role="user", content="How much is rent?"),
            ConversationTurn(role="assistant", content="The rent is $500."),
        ]
        assert session.state is ChatState.IDLE

    @pytest.mark.asyncio
    async def test_grounding_context_is_system_prompt_not_a_turn(self):
        client = FakeGeminiClient(fragments=["ok"])
        session = ChatSession(client, document_context="Full Document Text:\nLEASE")

        await collect(session.send("Question"))

        call = client.calls[0]
        assert "Full Document Text:\nLEASE" in call["system"]
        assert call["turns"] == [ConversationTurn(role="user", content="Question")]

    @pytest.mark.asyncio
    async def test_prior_turns_are_sent_with_new_question(self):
        client = FakeGeminiClient(fragments=["second answer"])
        history = [{"role": "user", "content": "first"}, {"role": "assistant", "content": "first answer"}, {"role": "user"}]
        session = ChatSession(client, history=history)

        await collect(session.send("second"))

        assert [t.content for t in client.calls[0]["turns"]] == ["first", "first answer", "second"]

    @pytest.mark.asyncio
    async def test_send_while_awaiting_is_rejected(self):
        client = FakeGeminiClient(fragments=["a", "b"], delay=0.05)
        session = ChatSession(client)

        stream = session.send("first")
        assert session.state is ChatState.AWAITING_RESPONSE
        with pytest.raises(ConversationBusyError) as exc_info:
            session.send("second")
        assert exc_info.value.status_code == 409

        assert await collect(stream) == ["a", "b"]
        assert [t.content for t in session.turns] == ["first", "ab"]

    @pytest.mark.asyncio
    async def test_empty_message_is_rejected(self):
        session = ChatSession(FakeGeminiClient())
        with pytest.raises(InvalidConversationError):
            session.send("   ")
        assert session.turns == []

    @pytest.mark.asyncio
    async def test_replies_follow_send_order(self):
        # The first reply is slower than the second would be on its own.
        client = ScriptedClient(replies=["reply one", "reply two"], delays=[0.1, 0.0])
        session = ChatSession(client)

        first = await collect(session.send("one"))
        second = await collect(session.send("two"))

        assert first == ["reply one"]
        assert second == ["reply two"]
        assert [(t.role, t.content) for t in session.turns] == [
            ("user", "one"), ("assistant", "reply one"),
            ("user", "two"), ("assistant", "reply two"),
        ]

    @pytest.mark.asyncio
    async def test_cancel_stops_delivery_and_keeps_user_turn(self):
        client = FakeGeminiClient(fragments=["one", "two", "three"], delay=0.05)
        session = ChatSession(client)
        received = []

        async def consume():
            async for fragment in session.send("question"):
                received.append(fragment)
                session.cancel()

        await asyncio.wait_for(consume(), timeout=2)

        assert received == ["one"]
        assert session.turns == [ConversationTurn(role="user", content="question")]
        assert session.state is ChatState.IDLE

    @pytest.mark.asyncio
    async def test_cancel_from_another_task_unblocks_consumer(self):
        client = FakeGeminiClient(fragments=["late"], delay=10)
        session = ChatSession(client)
        stream = session.send("question")

        async def cancel_soon():
            await asyncio.sleep(0.05)
            session.cancel()

        canceller = asyncio.create_task(cancel_soon())
        received = await asyncio.wait_for(collect(stream), timeout=2)
        await canceller

        assert received == []
        assert [t.role for t in session.turns] == ["user"]

    @pytest.mark.asyncio
    async def test_unread_reply_keeps_session_busy_until_cancelled(self):
        client = FakeGeminiClient(fragments=["answer"])
        session = ChatSession(client)
        session.send("never read")

        assert session.state is ChatState.AWAITING_RESPONSE
        with pytest.raises(ConversationBusyError):
            session.send("next")

        session.cancel()
        assert session.state is ChatState.IDLE
        assert client.calls == []
        assert await collect(session.send("next")) == ["answer"]

    @pytest.mark.asyncio
    async def test_new_send_allowed_after_cancel(self):
        session = ChatSession(FakeGeminiClient(fragments=["answer"]))
        session.send("abandoned")
        session.cancel()

        assert await collect(session.send("again")) == ["answer"]
        assert [t.content for t in session.turns] == ["abandoned", "again", "answer"]

    @pytest.mark.asyncio
    async def test_upstream_error_propagates_without_reply(self):
        client = FakeGeminiClient(fragments=["partial"], error=RuntimeError("429 Resource exhausted: quota"))
        session = ChatSession(client)

        with pytest.raises(QuotaExceededError):
            await collect(session.send("question"))

        assert session.turns == [ConversationTurn(role="user", content="question")]
        assert session.state is ChatState.IDLE

    @pytest.mark.asyncio
    async def test_reset_clears_history(self):
        session = ChatSession(FakeGeminiClient(fragments=["x"]))
        await collect(session.send("q"))
        session.reset()
        assert session.turns == []
        assert session.state is ChatState.IDLE
