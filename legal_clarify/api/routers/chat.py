"""Streaming chat endpoint grounded in an analyzed document."""
from __future__ import annotations

import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from legal_clarify.api.dependencies import get_resources
from legal_clarify.domain.models import ChatRequest
from legal_clarify.llm_integration.exceptions import InvalidConversationError
from legal_clarify.services.chat_session import ChatSession, filter_valid_turns
from legal_clarify.services.resource_provider import ResourceProvider

logger = logging.getLogger(__name__)
router = APIRouter(tags=["chat"])


async def _relay_stream(first: str, rest: AsyncIterator[str]) -> AsyncIterator[str]:
    yield first
    try:
        async for fragment in rest:
            yield fragment
    except Exception:
        # Headers are already sent; the status can no longer change.
        logger.exception("Chat stream failed after the response started")
        raise


@router.post("/chat")
async def chat(body: ChatRequest, resources: ResourceProvider = Depends(get_resources)):
    if not isinstance(body.messages, list):
        raise InvalidConversationError()

    turns = filter_valid_turns(body.messages)
    if not turns or turns[-1].role != "user":
        raise InvalidConversationError("The conversation must end with a user message.")

    client = resources.get_gemini_client()
    session = ChatSession(client, document_context=body.document_context, history=turns[:-1])
    stream = session.send(turns[-1].content)

    # The first fragment is awaited here so call-time failures still get a JSON error.
    try:
        first = await stream.__anext__()
    except StopAsyncIteration:
        first = ""

    logger.info("Streaming chat reply (%d prior turns)", len(turns) - 1)
    return StreamingResponse(_relay_stream(first, stream), media_type="text/plain; charset=utf-8")
