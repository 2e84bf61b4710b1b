"""Unit tests for conversation data models."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from datetime import datetime
from models.conversation import BotResponse, Conversation, ConversationSnapshot


class TestBotResponse:
    """Test suite for BotResponse."""

    def test_metadata_is_copied_and_read_only(self):
        metadata = {"a": "1"}
        response = BotResponse("hi", metadata)
        metadata["b"] = "2"

        assert response.metadata == {"a": "1"}
        with pytest.raises(TypeError):
            response.metadata["c"] = "3"

    def test_is_frozen(self):
        response = BotResponse("hi")
        with pytest.raises(Exception):
            response.content = "changed"

    def test_failure_has_empty_metadata(self):
        response = BotResponse.failure("auth token expired")
        assert response.content == "auth token expired"
        assert response.metadata == {}


class TestConversation:
    """Test suite for Conversation."""

    def test_defaults(self):
        conversation = Conversation(system_prompt="sys")
        assert conversation.user_turns == []
        assert conversation.bot_turns == []
        assert isinstance(conversation.started_at, datetime)
        assert conversation.is_user_turn()

    def test_alternating_turns(self):
        conversation = Conversation(system_prompt="sys")
        conversation.add_user_turn("Hi")
        assert conversation.is_bot_turn()
        conversation.add_bot_turn(BotResponse("Hello!"))
        assert conversation.is_user_turn()

    def test_bot_turn_requires_user_turn(self):
        conversation = Conversation(system_prompt="sys")
        with pytest.raises(ValueError):
            conversation.add_bot_turn(BotResponse("Hello!"))

    def test_second_user_turn_requires_reply(self):
        conversation = Conversation(system_prompt="sys")
        conversation.add_user_turn("Hi")
        with pytest.raises(ValueError):
            conversation.add_user_turn("Hello?")

    def test_snapshot_is_detached(self):
        """Test later turns do not show up in an earlier snapshot."""
        conversation = Conversation(system_prompt="sys")
        conversation.add_user_turn("Hi")
        snapshot = conversation.snapshot()
        conversation.add_bot_turn(BotResponse("Hello!"))

        assert snapshot == ConversationSnapshot(user_turns=("Hi",), bot_turns=(), system_prompt="sys")
