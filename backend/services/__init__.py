"""Services for the chatbot CLI."""
from .errors import (
    ChatbotError,
    CredentialError,
    ResponseDecodingError,
    TranscriptWriteError,
    UnknownBackendError,
)
from .retry import RetryPolicy, call_with_retry
from .bot_backend import BotBackend, StubBot, construct_messages
from .toast_jam import ToastJamBot
from .groq_bot import GroqBot
from .bot_selector import select_backend
from .transcript import format_transcript, transcript_filename, write_transcript
from .conversation_controller import ChatState, ConversationController

__all__ = ['ChatbotError', 'CredentialError', 'ResponseDecodingError', 'TranscriptWriteError', 'UnknownBackendError', 'RetryPolicy', 'call_with_retry', 'BotBackend', 'StubBot', 'construct_messages', 'ToastJamBot', 'GroqBot', 'select_backend', 'format_transcript', 'transcript_filename', 'write_transcript', 'ChatState', 'ConversationController']
