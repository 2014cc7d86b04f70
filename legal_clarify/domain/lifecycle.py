from enum import Enum

class ChatState(str, Enum):
    """Defines the possible states of a chat session between two turns."""
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"

class ErrorKind(str, Enum):
    """User-facing failure categories surfaced by the analysis core."""
    MISSING_INPUT = "MissingInput"
    UNSUPPORTED_FILE_TYPE = "UnsupportedFileType"
    EXTRACTION_FAILURE = "ExtractionFailure"
    NOT_CONFIGURED = "NotConfigured"
    QUOTA_EXCEEDED = "QuotaExceeded"
    RESPONSE_UNPARSEABLE = "ResponseUnparseable"
    INVALID_CONVERSATION = "InvalidConversation"
    UNKNOWN = "Unknown"
