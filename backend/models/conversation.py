"""Conversation data models."""
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import List, Mapping, Tuple


@dataclass(frozen=True)
class BotResponse:
    """A single reply produced by a bot backend."""
    content: str
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze a private copy so callers can't mutate a recorded turn
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def failure(cls, message: str) -> "BotResponse":
        """Build the response shown in place of a reply when a call fails."""
        return cls(content=message, metadata={})


@dataclass(frozen=True)
class Message:
    """One entry of a chat request sent to a remote backend."""
    content: str
    role: str


@dataclass(frozen=True)
class ConversationSnapshot:
    """Immutable copy of the conversation taken when a backend call is dispatched."""
    user_turns: Tuple[str, ...]
    bot_turns: Tuple[BotResponse, ...]
    system_prompt: str


@dataclass
class Conversation:
    """
    Represents the single conversation of a chat session.

    Bot turns never outnumber user turns and trail them by at most one.
    """
    system_prompt: str
    user_turns: List[str] = field(default_factory=list)
    bot_turns: List[BotResponse] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)

    def is_user_turn(self) -> bool:
        return len(self.user_turns) == len(self.bot_turns)

    def is_bot_turn(self) -> bool:
        return not self.is_user_turn()

    def add_user_turn(self, text: str) -> None:
        if not self.is_user_turn():
            raise ValueError("Cannot add a user turn while a bot turn is pending")
        self.user_turns.append(text)

    def add_bot_turn(self, response: BotResponse) -> None:
        if not self.is_bot_turn():
            raise ValueError("Cannot add a bot turn without a preceding user turn")
        self.bot_turns.append(response)

    def snapshot(self) -> ConversationSnapshot:
        return ConversationSnapshot(
            user_turns=tuple(self.user_turns),
            bot_turns=tuple(self.bot_turns),
            system_prompt=self.system_prompt,
        )
