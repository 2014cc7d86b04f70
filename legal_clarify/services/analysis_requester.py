import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from legal_clarify.config.schema import schema_document_analysis
from legal_clarify.domain.models import DocumentAnalysis
from legal_clarify.llm_integration.exceptions import (
    MissingInputError, QuotaExceededError, ResponseUnparseableError, looks_like_quota_message
)
from legal_clarify.llm_integration.gemini_client import strip_code_fences
from legal_clarify.services.prompt_builder import build_analysis_prompt
from legal_clarify.services.resource_provider import ResourceProvider

logger = logging.getLogger(__name__)

def extract_json_object(text: str) -> str:
    """
    Returns the first top-level {...} object found in `text`, matching braces
    while skipping over JSON string literals. When the text has no '{' at all
    the whole (fence-stripped) text is returned so the parser can judge it.
    An object that never closes is returned up to the end of the text.
    """
    cleaned = strip_code_fences(text)
    start = cleaned.find("{")
    if start == -1:
        return cleaned

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(cleaned)):
        char = cleaned[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return cleaned[start:index + 1]
    return cleaned[start:]

def parse_analysis(value: Any) -> DocumentAnalysis:
    """Validates a decoded JSON value field by field. Partial objects are rejected."""
    try:
        return DocumentAnalysis.model_validate(value)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'response'}: {err['msg']}" for err in e.errors()
        )
        raise ResponseUnparseableError(
            f"The analysis response was incomplete or malformed ({problems}). Please try again."
        ) from e

def parse_analysis_text(text: str) -> DocumentAnalysis:
    """Locates, decodes and validates the DocumentAnalysis embedded in a free-text answer."""
    candidate = extract_json_object(text)
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        if "{" not in candidate and looks_like_quota_message(candidate):
            raise QuotaExceededError() from e
        raise ResponseUnparseableError(
            "The analysis service did not return a readable result. Please try again."
        ) from e
    return parse_analysis(value)

class AnalysisRequester:
    """
    Sends a document to the LLM and returns a validated DocumentAnalysis.
    No caching: every call issues a fresh request.
    """
    def __init__(self, resources: ResourceProvider):
        self.resources = resources

    @property
    def mode(self) -> str:
        return self.resources.settings.analysis_mode

    async def request_analysis(self, document_text: Optional[str], document_type: Optional[str] = None) -> DocumentAnalysis:
        if not document_text or not document_text.strip():
            raise MissingInputError()

        # Fails before the prompt is built when no API key is configured.
        client = self.resources.get_gemini_client()

        settings = self.resources.settings
        free_text = self.mode == "free_text"
        prompt = build_analysis_prompt(
            document_text,
            document_type,
            free_text=free_text,
            max_chars=settings.max_document_chars,
        )
        logger.info(
            "Requesting %s analysis (type=%s, %d chars)",
            self.mode, document_type or "document", len(document_text),
        )

        if free_text:
            text = await client.generate_text_async(prompt.system, prompt.user)
            analysis = parse_analysis_text(text)
        else:
            value = await client.generate_structured_async(prompt.system, prompt.user, schema_document_analysis)
            analysis = parse_analysis(value)

        logger.info(
            "Analysis ready: %d key points, %d terms, %d warnings",
            len(analysis.key_points), len(analysis.important_terms), len(analysis.warnings),
        )
        return analysis
