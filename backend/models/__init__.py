"""Data models for the chatbot CLI."""
from .conversation import BotResponse, Conversation, ConversationSnapshot, Message

__all__ = [
    "BotResponse",
    "Conversation",
    "ConversationSnapshot",
    "Message",
]
