from typing import Any, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Pydantic models for the data exchanged with the LLM and the HTTP clients.
# Field names are snake_case in Python and camelCase on the wire.

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class ImportantTerm(CamelModel):
    term: str
    simple_explanation: str

class DocumentAnalysis(CamelModel):
    """The structured explanation of a legal document. Every field is required."""
    summary: str
    key_points: List[str]
    important_terms: List[ImportantTerm]
    things_to_know: List[str]
    warnings: List[str]

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)

class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str

class DocumentTypeOption(BaseModel):
    value: str
    label: str

class SampleDocument(CamelModel):
    name: str
    description: str = ""
    document_type: str
    text: str

class DocumentCatalog(CamelModel):
    document_types: List[DocumentTypeOption] = Field(default_factory=list)
    samples: List[SampleDocument] = Field(default_factory=list)

    def label_for(self, value: Optional[str]) -> Optional[str]:
        for option in self.document_types:
            if option.value == value:
                return option.label
        return None

# --- HTTP request/response bodies ---

class AnalyzeRequest(CamelModel):
    document_text: Optional[str] = None
    document_type: Optional[str] = None

class AnalyzeResponse(BaseModel):
    analysis: DocumentAnalysis

class ChatRequest(CamelModel):
    # Kept loose so a non-list value is reported as InvalidConversation, not a 422.
    messages: Any = None
    document_context: Optional[str] = None

class ExtractFileResponse(BaseModel):
    text: str
