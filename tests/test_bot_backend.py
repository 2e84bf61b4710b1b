"""Unit tests for the bot backend contract, the stub backend and backend selection."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from models.conversation import BotResponse, Message
from services.bot_backend import BotBackend, StubBot, construct_messages
from services.bot_selector import available_backends, select_backend
from services.errors import UnknownBackendError
from services.groq_bot import GroqBot
from services.toast_jam import ToastJamBot


class TestConstructMessages:
    """Test suite for construct_messages."""

    def test_system_prompt_first_then_interleaved(self):
        """Test history is system prompt, then user/bot turns in order."""
        messages = construct_messages(
            ["Hi", "How are you?"],
            [BotResponse("Hello!")],
            "Be nice",
            "SYSTEM",
            "USER",
            "LLM"
        )

        assert messages == [
            Message("Be nice", "SYSTEM"),
            Message("Hi", "USER"),
            Message("Hello!", "LLM"),
            Message("How are you?", "USER"),
        ]

    def test_empty_history(self):
        """Test an empty conversation yields only the system prompt."""
        messages = construct_messages([], [], "Be nice", "system", "user", "assistant")
        assert messages == [Message("Be nice", "system")]

    def test_messages_to_cut_drops_leading_pairs(self):
        """Test leading turn pairs can be left out."""
        messages = construct_messages(
            ["one", "two"],
            [BotResponse("uno")],
            "sys",
            "system",
            "user",
            "assistant",
            messages_to_cut=1
        )
        assert [m.content for m in messages] == ["sys", "two"]


class TestStubBot:
    """Test suite for the offline stub backend."""

    def test_canned_reply(self):
        """Test the stub answers with its canned reply."""
        response = StubBot().get_response(["Hi"], [], "sys")
        assert response.content == StubBot.CANNED_REPLY
        assert response.metadata == {"bot": "stub", "turn": "1"}

    def test_echo_reply(self):
        """Test the echo variant repeats the last user turn."""
        bot = StubBot(name="echo", echo=True)
        response = bot.get_response(["Hi", "Repeat me"], [BotResponse("Hi")], "sys")
        assert response.content == "Repeat me"
        assert response.metadata["turn"] == "2"

    def test_is_a_bot_backend(self):
        assert isinstance(StubBot(), BotBackend)

    def test_contract_is_abstract(self):
        """Test the base contract cannot be instantiated."""
        with pytest.raises(TypeError):
            BotBackend()


class TestSelectBackend:
    """Test suite for backend selection."""

    def test_toast(self):
        backend = select_backend("toast")
        assert isinstance(backend, ToastJamBot)
        assert backend.name == "Toast Jam"

    @pytest.mark.parametrize("identifier", ["llama-3.1-8b-instant", "llama-3.3-70b-versatile"])
    def test_groq_models(self, identifier):
        backend = select_backend(identifier)
        assert isinstance(backend, GroqBot)
        assert backend.model == identifier

    def test_stub_and_echo(self):
        assert isinstance(select_backend("stub"), StubBot)
        assert select_backend("echo").echo is True

    def test_identifier_is_case_insensitive(self):
        assert isinstance(select_backend(" Toast "), ToastJamBot)

    @pytest.mark.parametrize("identifier", ["gpt-9", "", None])
    def test_unknown_backend(self, identifier):
        """Test unknown identifiers raise UnknownBackendError instead of crashing."""
        with pytest.raises(UnknownBackendError) as exc_info:
            select_backend(identifier)
        assert exc_info.value.error.code == "UNKNOWN_BACKEND"
        assert exc_info.value.error.details["available"] == available_backends()

    def test_available_backends_sorted(self):
        backends = available_backends()
        assert backends == sorted(backends)
        assert {"toast", "stub", "echo"} <= set(backends)
