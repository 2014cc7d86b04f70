import asyncio
from typing import Any, Dict, List, Optional

import pytest

from legal_clarify.config.settings import Settings
from legal_clarify.services.resource_provider import ResourceProvider


VALID_ANALYSIS: Dict[str, Any] = {
    "summary": "You rent the flat for a year and pay monthly.",
    "keyPoints": ["Rent is due on the 1st", "Late fees apply after the 5th"],
    "importantTerms": [
        {"term": "Security deposit", "simpleExplanation": "Money held to cover damage."},
        {"term": "Security deposit", "simpleExplanation": "Listed twice by the model."},
    ],
    "thingsToKnow": ["You fix things under $100 yourself"],
    "warnings": ["Leaving early costs you the deposit"],
}


class FakeGeminiClient:
    """Stands in for GeminiClient; records every call it receives."""

    def __init__(self, structured: Optional[Any] = None, text: Optional[str] = None,
                 fragments: Optional[List[str]] = None, error: Optional[Exception] = None,
                 delay: float = 0.0):
        self.structured = structured
        self.text = text
        self.fragments = fragments or []
        self.error = error
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def generate_structured_async(self, system, user, response_schema):
        self.calls.append({"mode": "structured", "system": system, "user": user, "schema": response_schema})
        if self.error:
            raise self.error
        return self.structured

    async def generate_text_async(self, system, user):
        self.calls.append({"mode": "free_text", "system": system, "user": user})
        if self.error:
            raise self.error
        return self.text

    async def stream_chat_async(self, system, turns):
        self.calls.append({"mode": "chat", "system": system, "turns": list(turns)})
        for fragment in self.fragments:
            await asyncio.sleep(self.delay)
            yield fragment
        if self.error:
            raise self.error


def make_settings(**overrides) -> Settings:
    values = {"GOOGLE_GENERATIVE_AI_API_KEY": "test-key", "ANALYSIS_MODE": "structured"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def unconfigured_settings():
    return make_settings(GOOGLE_GENERATIVE_AI_API_KEY=None)


@pytest.fixture
def fake_client():
    return FakeGeminiClient(structured=dict(VALID_ANALYSIS), fragments=["Hello", " there"])


@pytest.fixture
def resources(settings, fake_client):
    provider = ResourceProvider(settings)
    provider.set_gemini_client(fake_client)
    return provider
