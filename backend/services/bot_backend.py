"""
Bot backend contract and the offline stub backend.

Every backend turns the conversation so far into a single BotResponse. A
backend must not let recoverable failures escape: they are returned as a
BotResponse whose content describes the problem, so the conversation can
continue.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Sequence

from models.conversation import BotResponse, Message

logger = logging.getLogger(__name__)


class BotBackend(ABC):
    """Polymorphic responder that produces a reply from the conversation history."""

    name: str = "bot"

    @abstractmethod
    def get_response(
        self,
        user_turns: Sequence[str],
        bot_turns: Sequence[BotResponse],
        system_prompt: str
    ) -> BotResponse:
        """
        Produce the next bot turn.

        Args:
            user_turns: All user turns so far, oldest first
            bot_turns: All bot turns so far, one fewer than user_turns
            system_prompt: Instructions sent ahead of the conversation

        Returns:
            BotResponse with the reply, or an error description and empty metadata

        Raises:
            ResponseDecodingError: If a remote reply cannot be decoded
        """


def construct_messages(
    user_turns: Sequence[str],
    bot_turns: Sequence[BotResponse],
    system_prompt: str,
    system_role: str,
    user_role: str,
    bot_role: str,
    messages_to_cut: int = 0
) -> List[Message]:
    """
    Build the full chat history for a request: system prompt first, then
    user and bot turns interleaved in chronological order.

    Args:
        messages_to_cut: Number of leading turn pairs to leave out
    """
    messages = [Message(content=system_prompt, role=system_role)]
    for i in range(messages_to_cut, len(user_turns)):
        messages.append(Message(content=user_turns[i], role=user_role))
        if i < len(bot_turns):
            messages.append(Message(content=bot_turns[i].content, role=bot_role))
    return messages


class StubBot(BotBackend):
    """Offline backend returning canned or echoed replies."""

    CANNED_REPLY = "That's so cool!"

    def __init__(self, name: str = "stub", echo: bool = False):
        self.name = name
        self.echo = echo

    def get_response(
        self,
        user_turns: Sequence[str],
        bot_turns: Sequence[BotResponse],
        system_prompt: str
    ) -> BotResponse:
        if self.echo and user_turns:
            content = user_turns[-1]
        else:
            content = self.CANNED_REPLY
        logger.debug(f"{self.name} replying to turn {len(user_turns)}")
        return BotResponse(
            content=content,
            metadata={"bot": self.name, "turn": str(len(user_turns))}
        )
