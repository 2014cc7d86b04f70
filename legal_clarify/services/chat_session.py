import asyncio
import logging
from typing import Any, AsyncIterator, Iterable, List, Optional, Protocol, Sequence

from legal_clarify.domain.lifecycle import ChatState
from legal_clarify.domain.models import ConversationTurn
from legal_clarify.llm_integration.exceptions import (
    ConversationBusyError, InvalidConversationError, classify_api_error
)
from legal_clarify.services.prompt_builder import build_chat_system_prompt

logger = logging.getLogger(__name__)

ROLE_ALIASES = {"user": "user", "assistant": "assistant", "model": "assistant"}

_CLOSED = object()

class ChatStreamClient(Protocol):
    def stream_chat_async(self, system: str, turns: Sequence[ConversationTurn]) -> AsyncIterator[str]: ...

def _turn_content(message: Any) -> Optional[str]:
    content = message.get("content")
    if isinstance(content, str) and content.strip():
        return content
    parts = message.get("parts")
    if isinstance(parts, list):
        text = "".join(
            part.get("text", "") for part in parts
            if isinstance(part, dict) and part.get("type", "text") == "text" and isinstance(part.get("text"), str)
        )
        if text.strip():
            return text
    return None

def filter_valid_turns(messages: Iterable[Any]) -> List[ConversationTurn]:
    """
    Drops every message without a known role or a text payload. Accepts plain
    {role, content} dicts, UI messages carrying {type: "text", text} parts, and
    ConversationTurn instances.
    """
    turns = []
    for message in messages:
        if isinstance(message, ConversationTurn):
            if message.content.strip():
                turns.append(message)
            continue
        if not isinstance(message, dict):
            continue
        role = ROLE_ALIASES.get(message.get("role")) if isinstance(message.get("role"), str) else None
        content = _turn_content(message)
        if role and content:
            turns.append(ConversationTurn(role=role, content=content))
    return turns

class ChatSession:
    """
    A single user's conversation about one document.

    Only one reply may be in flight at a time, so replies arrive in the order
    the questions were sent. The grounding context goes into the system
    instruction and is never stored as a turn.
    """
    def __init__(self, client: ChatStreamClient, document_context: Optional[str] = None,
                 history: Optional[Iterable[Any]] = None):
        self.client = client
        self.document_context = document_context
        self.turns: List[ConversationTurn] = filter_valid_turns(history or [])
        self.state = ChatState.IDLE
        self._queue: Optional[asyncio.Queue] = None
        self._producer: Optional[asyncio.Task] = None
        self._active: Optional[object] = None

    @property
    def system_prompt(self) -> str:
        return build_chat_system_prompt(self.document_context)

    def send(self, user_text: str) -> AsyncIterator[str]:
        """
        Records the user's turn and returns an async iterator over the
        assistant's reply fragments. Raises immediately if the text is empty
        or a previous reply is still streaming.

        The session stays busy from this call until the iterator is exhausted
        or closed, or until cancel() is called. A caller that drops the
        iterator without reading it must call cancel() before sending again.
        """
        if self.state is ChatState.AWAITING_RESPONSE:
            raise ConversationBusyError()
        if not isinstance(user_text, str) or not user_text.strip():
            raise InvalidConversationError("Message text is required.")

        self.turns.append(ConversationTurn(role="user", content=user_text))
        self.state = ChatState.AWAITING_RESPONSE
        token = object()
        self._active = token
        return self._relay(token, list(self.turns))

    async def _produce(self, queue: asyncio.Queue, turns: List[ConversationTurn]) -> None:
        try:
            async for fragment in self.client.stream_chat_async(self.system_prompt, turns):
                await queue.put(fragment)
        except Exception as e:
            await queue.put(classify_api_error(e, "Failed to process chat message. Please try again."))
        finally:
            queue.put_nowait(_CLOSED)

    async def _relay(self, token: object, turns: List[ConversationTurn]) -> AsyncIterator[str]:
        if self._active is not token:
            return
        queue: asyncio.Queue = asyncio.Queue()
        producer = asyncio.create_task(self._produce(queue, turns))
        self._queue, self._producer = queue, producer
        fragments: List[str] = []
        completed = False
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED or self._active is not token:
                    break
                if isinstance(item, BaseException):
                    raise item
                fragments.append(item)
                yield item
            completed = self._active is token
        finally:
            if not producer.done():
                producer.cancel()
            # A cancelled turn has already handed the session back; leave it alone.
            if self._active is token:
                self._active = None
                self._queue, self._producer = None, None
                if completed:
                    self.turns.append(ConversationTurn(role="assistant", content="".join(fragments)))
                self.state = ChatState.IDLE
            if not completed:
                logger.info("Chat reply abandoned after %d fragments", len(fragments))

    def cancel(self) -> None:
        """
        Aborts the reply in flight. The consumer stops at its next wake-up,
        later fragments are dropped, and the user turn stays without a reply.
        """
        if self.state is not ChatState.AWAITING_RESPONSE:
            return
        self._active = None
        if self._producer is not None and not self._producer.done():
            self._producer.cancel()
        if self._queue is not None:
            self._queue.put_nowait(_CLOSED)
        self._queue, self._producer = None, None
        self.state = ChatState.IDLE

    def reset(self) -> None:
        self.cancel()
        self.turns.clear()
