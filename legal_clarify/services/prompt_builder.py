from typing import NamedTuple, Optional

from legal_clarify.domain.models import DocumentAnalysis
from legal_clarify.llm_integration.prompt_loader import load_prompt_template

DEFAULT_MAX_DOCUMENT_CHARS = 8000
TRUNCATION_MARKER = "\n\n[Document truncated to fit within API limits]"
DEFAULT_DOCUMENT_TYPE = "document"

class AnalysisPrompt(NamedTuple):
    system: str
    user: str

def truncate_document_text(text: str, max_chars: int = DEFAULT_MAX_DOCUMENT_CHARS) -> str:
    """Cuts the text to its first `max_chars` characters and marks the cut. No-op for short texts."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER

def build_analysis_prompt(
    document_text: str,
    document_type: Optional[str] = None,
    *,
    free_text: bool = False,
    max_chars: int = DEFAULT_MAX_DOCUMENT_CHARS,
) -> AnalysisPrompt:
    """
    Builds the system and user instructions for a document analysis request.

    The free-text variant of the system instruction carries a literal example
    of the JSON shape, since the model's answer has to be parsed by hand.
    """
    system_template = "analysis_system_json.txt" if free_text else "analysis_system.txt"
    system = load_prompt_template(system_template, {}).strip()
    user = load_prompt_template("analysis_user.txt", {
        "document_type": (document_type or "").strip() or DEFAULT_DOCUMENT_TYPE,
        "document_text": truncate_document_text(document_text, max_chars),
    }).strip()
    return AnalysisPrompt(system=system, user=user)

def build_grounding_context(document_text: str, analysis: DocumentAnalysis) -> str:
    """Folds the original document and its analysis into the context carried by every chat turn."""
    return (
        f"Full Document Text:\n{document_text}\n\n"
        f"Document Analysis:\n"
        f"Summary: {analysis.summary}\n"
        f"Key Points: {', '.join(analysis.key_points)}\n"
        f"Warnings: {', '.join(analysis.warnings)}"
    )

def build_chat_system_prompt(document_context: Optional[str] = None) -> str:
    context_section = ""
    if document_context and document_context.strip():
        context_section = (
            "\nContext: The user has uploaded a legal document. "
            f"Here's the analysis context:\n{document_context}\n"
        )
    return load_prompt_template("chat_system.txt", {"context_section": context_section}).strip()
