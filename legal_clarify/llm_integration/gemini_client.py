import asyncio
import json
import logging
import time
from typing import Any, AsyncIterator, Dict, List, Sequence

import google.generativeai as genai

from legal_clarify.config.settings import Settings
from legal_clarify.domain.models import ConversationTurn
from legal_clarify.llm_integration.exceptions import (
    NotConfiguredError, ResponseUnparseableError, classify_api_error
)

logger = logging.getLogger(__name__)

# Gemini calls the assistant side of a conversation "model".
GEMINI_ROLES = {"user": "user", "assistant": "model"}

def to_gemini_contents(turns: Sequence[ConversationTurn]) -> List[Dict[str, Any]]:
    return [{"role": GEMINI_ROLES[turn.role], "parts": [turn.content]} for turn in turns]

def strip_code_fences(text: str) -> str:
    return text.strip().replace("```json", "").replace("```", "").strip()

def _chunk_text(chunk: Any) -> str:
    """Joins the text parts of a streamed chunk; chunks without text parts yield ''."""
    candidates = getattr(chunk, "candidates", None) or []
    if not candidates:
        return ""
    return "".join(getattr(part, "text", "") or "" for part in candidates[0].content.parts)

class GeminiClient:
    """
    Thin async adapter over google-generativeai. Every SDK failure is mapped
    onto the error taxonomy; nothing is retried here.
    """
    def __init__(self, settings: Settings):
        if not settings.is_configured:
            raise NotConfiguredError()
        genai.configure(api_key=settings.google_api_key.get_secret_value())
        self.settings = settings

    def _model(self, model_name: str, system_instruction: str, **generation_config) -> genai.GenerativeModel:
        return genai.GenerativeModel(
            model_name,
            system_instruction=system_instruction,
            generation_config=genai.GenerationConfig(
                max_output_tokens=self.settings.max_output_tokens,
                **generation_config,
            ),
        )

    async def _generate_async(self, model: genai.GenerativeModel, prompt: Any, step_name: str) -> str:
        start_time = time.time()
        try:
            response = await asyncio.wait_for(
                model.generate_content_async(prompt),
                timeout=self.settings.analysis_timeout_seconds,
            )
            text = response.text
        except Exception as e:
            error = classify_api_error(e)
            logger.warning("%s failed (%s): %s", step_name, error.kind.value, e)
            raise error from e
        logger.info("%s completed in %d ms", step_name, int((time.time() - start_time) * 1000))
        return text

    async def generate_structured_async(self, system: str, user: str, response_schema: Dict[str, Any]) -> Dict[str, Any]:
        """Asks the model for an object that honours `response_schema` and returns the decoded JSON."""
        model = self._model(
            self.settings.analysis_model,
            system,
            temperature=self.settings.analysis_temperature,
            response_mime_type="application/json",
            response_schema=response_schema,
        )
        text = await self._generate_async(model, user, "structured analysis")
        cleaned_text = strip_code_fences(text)
        try:
            return json.loads(cleaned_text)
        except json.JSONDecodeError as e:
            raise ResponseUnparseableError(
                f"The analysis service returned invalid JSON. Please try again. ({e})"
            ) from e

    async def generate_text_async(self, system: str, user: str) -> str:
        model = self._model(
            self.settings.analysis_model,
            system,
            temperature=self.settings.analysis_temperature,
        )
        return await self._generate_async(model, user, "free-text analysis")

    async def stream_chat_async(self, system: str, turns: Sequence[ConversationTurn]) -> AsyncIterator[str]:
        """
        Streams the model's reply to `turns` fragment by fragment. The time
        budget applies to the first fragment and to each gap between fragments.
        """
        model = self._model(
            self.settings.chat_model,
            system,
            temperature=self.settings.chat_temperature,
        )
        timeout = self.settings.chat_timeout_seconds
        try:
            response = await asyncio.wait_for(
                model.generate_content_async(to_gemini_contents(turns), stream=True),
                timeout=timeout,
            )
            chunks = response.__aiter__()
            while True:
                try:
                    chunk = await asyncio.wait_for(chunks.__anext__(), timeout=timeout)
                except StopAsyncIteration:
                    break
                text = _chunk_text(chunk)
                if text:
                    yield text
        except Exception as e:
            error = classify_api_error(e, "Failed to process chat message. Please try again.")
            logger.warning("chat stream failed (%s): %s", error.kind.value, e)
            raise error from e
