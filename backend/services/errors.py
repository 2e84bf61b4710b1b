"""Exception types shared by the chatbot services."""
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class ChatbotErrorInfo:
    """Structured error information attached to chatbot exceptions."""
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


class ChatbotError(Exception):
    """Base exception carrying structured error information."""

    code = "CHATBOT_ERROR"

    def __init__(self, message: str, **details: Any):
        self.error = ChatbotErrorInfo(code=self.code, message=message, details=details)
        super().__init__(message)


class UnknownBackendError(ChatbotError):
    """Raised when no bot backend matches the requested identifier."""

    code = "UNKNOWN_BACKEND"


class CredentialError(ChatbotError):
    """Raised when a backend credential is missing, malformed or expired."""

    code = "CREDENTIAL_ERROR"


class ResponseDecodingError(ChatbotError):
    """Raised when a remote backend returns a payload that cannot be decoded."""

    code = "RESPONSE_DECODING_ERROR"


class TranscriptWriteError(ChatbotError):
    """Raised when the transcript cannot be persisted."""

    code = "TRANSCRIPT_WRITE_ERROR"
