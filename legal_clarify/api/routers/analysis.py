"""Document analysis endpoints: text extraction, analysis and the document type catalog."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from legal_clarify.api.dependencies import get_resources
from legal_clarify.config.document_catalog import get_document_catalog
from legal_clarify.domain.models import (
    AnalyzeRequest, AnalyzeResponse, DocumentCatalog, ExtractFileResponse
)
from legal_clarify.llm_integration.exceptions import (
    EmptyDocumentError, FileTooLargeError, MissingInputError
)
from legal_clarify.services.analysis_requester import AnalysisRequester
from legal_clarify.services.resource_provider import ResourceProvider
from legal_clarify.services.text_extractor import extract_text

logger = logging.getLogger(__name__)
router = APIRouter(tags=["analysis"])


@router.post("/analyze", response_model=AnalyzeResponse, response_model_by_alias=True)
async def analyze(body: AnalyzeRequest, resources: ResourceProvider = Depends(get_resources)):
    analysis = await AnalysisRequester(resources).request_analysis(body.document_text, body.document_type)
    return AnalyzeResponse(analysis=analysis)


@router.post("/extract-file", response_model=ExtractFileResponse)
async def extract_file(
    file: Optional[UploadFile] = File(None),
    resources: ResourceProvider = Depends(get_resources),
):
    if file is None:
        raise MissingInputError("No file provided")

    max_bytes = resources.settings.max_upload_bytes
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise FileTooLargeError(f"File is too large. The maximum size is {max_bytes // (1024 * 1024)}MB.")

    text = extract_text(data, file.content_type, file.filename)
    if not text.strip():
        raise EmptyDocumentError()
    logger.info("Extracted %d characters from %s", len(text), file.filename)
    return ExtractFileResponse(text=text)


@router.get("/document-types", response_model=DocumentCatalog, response_model_by_alias=True)
def document_types():
    return get_document_catalog()
