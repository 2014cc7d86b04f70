# legal_clarify/llm_integration/exceptions.py

import asyncio

from legal_clarify.domain.lifecycle import ErrorKind

class APIError(Exception):
    """Base exception for every failure surfaced to the caller."""
    kind: ErrorKind = ErrorKind.UNKNOWN
    status_code: int = 500
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}

class MissingInputError(APIError):
    """Raised when the request carries no document text (or no file)."""
    kind = ErrorKind.MISSING_INPUT
    status_code = 400
    default_message = "Document text is required"

class UnsupportedFileTypeError(APIError):
    """Raised when an uploaded file has a media type we cannot read."""
    kind = ErrorKind.UNSUPPORTED_FILE_TYPE
    status_code = 400

class ExtractionError(APIError):
    """Raised when a supported file cannot be turned into text (corrupt, encrypted...)."""
    kind = ErrorKind.EXTRACTION_FAILURE
    status_code = 500
    default_message = "Failed to extract text from the file. The file might be corrupted or password-protected."

class EmptyDocumentError(ExtractionError):
    """Raised when extraction succeeds but yields no text (e.g. a scanned PDF)."""
    status_code = 400
    default_message = "No text content found in the file."

class FileTooLargeError(ExtractionError):
    status_code = 400

class NotConfiguredError(APIError):
    """Raised when the API key is missing, invalid or rejected."""
    kind = ErrorKind.NOT_CONFIGURED
    status_code = 500
    default_message = (
        "Google Generative AI API key is not configured. Please add "
        "GOOGLE_GENERATIVE_AI_API_KEY to your environment variables."
    )

class QuotaExceededError(APIError):
    """Raised when the API quota or rate limit is exceeded."""
    kind = ErrorKind.QUOTA_EXCEEDED
    status_code = 429
    default_message = (
        "API quota exceeded. Please wait a few minutes before trying again, "
        "or upgrade your Google AI API plan for higher limits."
    )

class ResponseUnparseableError(APIError):
    """Raised when the API returns a malformed or invalid response (e.g., bad JSON)."""
    kind = ErrorKind.RESPONSE_UNPARSEABLE
    status_code = 500
    default_message = "The analysis service returned a response that could not be understood. Please try again."

class InvalidConversationError(APIError):
    kind = ErrorKind.INVALID_CONVERSATION
    status_code = 400
    default_message = "Invalid messages format. Messages must be an array."

class ConversationBusyError(InvalidConversationError):
    """Raised when a message is sent while the previous reply is still streaming."""
    status_code = 409
    default_message = "Please wait for the current reply to finish before sending another message."

class UnknownAPIError(APIError):
    """Raised for any other failure, including upstream timeouts."""
    kind = ErrorKind.UNKNOWN
    status_code = 500
    default_message = "Failed to analyze document. Please try again."


TIMEOUT_MESSAGE = "The AI service took too long to respond. Please try again."

QUOTA_ERROR_SUBSTRINGS = (
    'quota',
    'rate limit',
    'resource exhausted',
    'resource_exhausted',
    '429',
)

TIMEOUT_ERROR_SUBSTRINGS = (
    'deadline exceeded',
    'deadline_exceeded',
    '504',
)

FATAL_KEY_ERROR_SUBSTRINGS = (
    'api key',
    'api_key_invalid',
    'permission denied',
    'invalid authentication',
    'unauthenticated',
)

def looks_like_quota_message(text: str) -> bool:
    lowered = text.lower()
    return any(sub in lowered for sub in QUOTA_ERROR_SUBSTRINGS)

def classify_api_error(error: BaseException, fallback_message: str | None = None) -> APIError:
    """
    Maps an exception raised by the LLM SDK onto the error taxonomy.
    Errors that are already classified pass through unchanged.
    """
    if isinstance(error, APIError):
        return error
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return UnknownAPIError(TIMEOUT_MESSAGE)

    error_str = str(error).lower()
    if any(sub in error_str for sub in TIMEOUT_ERROR_SUBSTRINGS):
        return UnknownAPIError(TIMEOUT_MESSAGE)
    if looks_like_quota_message(error_str):
        return QuotaExceededError()
    if any(sub in error_str for sub in FATAL_KEY_ERROR_SUBSTRINGS):
        return NotConfiguredError(
            "Google Generative AI API key is missing or invalid. Please check your "
            "GOOGLE_GENERATIVE_AI_API_KEY environment variable."
        )
    return UnknownAPIError(fallback_message)
