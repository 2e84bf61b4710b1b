"""Turn controller for a single interactive conversation."""
import asyncio
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from models.conversation import BotResponse, Conversation, ConversationSnapshot
from services.bot_backend import BotBackend
from services.errors import ResponseDecodingError
from services.transcript import write_transcript

logger = logging.getLogger(__name__)


class ChatState(Enum):
    AWAITING_USER_INPUT = "awaiting_user_input"
    BOT_RESPONDING = "bot_responding"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class UserInput:
    text: str


@dataclass(frozen=True)
class BotReply:
    response: BotResponse
    dispatch_id: int


@dataclass(frozen=True)
class BackendFailed:
    error: ResponseDecodingError
    dispatch_id: int


@dataclass(frozen=True)
class Quit:
    pass


ChatEvent = Union[UserInput, BotReply, BackendFailed, Quit]
TransitionListener = Callable[[ChatState, ChatState, Conversation], None]


class ConversationController:
    """
    Owns the conversation and enforces turn order.

    All state changes happen on one asyncio event loop by consuming events
    from ``events``. A user submission starts exactly one background backend
    call on a snapshot of the conversation; its result comes back as a
    single BotReply (or BackendFailed) event. The controller is not thread
    safe: other threads must hand events over with ``post_threadsafe``.
    """

    def __init__(
        self,
        backend: BotBackend,
        system_prompt: str,
        transcript_dir: Union[str, Path],
        on_transition: Optional[TransitionListener] = None
    ):
        """
        Initialize the controller.

        Args:
            backend: Responder selected at startup
            system_prompt: Instructions sent ahead of every request
            transcript_dir: Directory the transcript is written to on quit
            on_transition: Called with (old_state, new_state, conversation) after each transition
        """
        self.backend = backend
        self.conversation = Conversation(system_prompt=system_prompt)
        self.transcript_dir = transcript_dir
        self.on_transition = on_transition
        self.events: "asyncio.Queue[ChatEvent]" = asyncio.Queue()
        self.transcript_path: Optional[Path] = None
        self._state = ChatState.AWAITING_USER_INPUT
        self._dispatch_id = 0
        self._pending_dispatch: Optional[int] = None

    @property
    def state(self) -> ChatState:
        return self._state

    def _transition(self, new_state: ChatState) -> None:
        old_state = self._state
        self._state = new_state
        logger.debug(f"State transition: {old_state.value} -> {new_state.value}")
        if self.on_transition is not None:
            self.on_transition(old_state, new_state, self.conversation)

    def submit(self, text: str) -> bool:
        """
        Record a user turn and dispatch the backend call.

        Must be called from the running event loop. Empty text, or a
        submission while a reply is pending or after quit, is ignored.

        Returns:
            True if the turn was recorded and a backend call dispatched
        """
        if self._state is not ChatState.AWAITING_USER_INPUT:
            logger.debug(f"Ignoring submission in state {self._state.value}")
            return False
        if not text or not text.strip():
            return False

        self.conversation.add_user_turn(text)
        snapshot = self.conversation.snapshot()
        self._transition(ChatState.BOT_RESPONDING)
        self._dispatch(snapshot)
        return True

    def receive(self, response: BotResponse, dispatch_id: Optional[int] = None) -> bool:
        """
        Record the backend's reply for the pending user turn.

        Replies arriving when no call is pending (for example after quit)
        or from a superseded dispatch are discarded.

        Returns:
            True if the reply was recorded
        """
        if self._state is not ChatState.BOT_RESPONDING:
            logger.info(f"Discarding bot response received in state {self._state.value}")
            return False
        if dispatch_id is not None and dispatch_id != self._pending_dispatch:
            logger.info(f"Discarding stale bot response from dispatch {dispatch_id}")
            return False

        self.conversation.add_bot_turn(response)
        self._pending_dispatch = None
        self._transition(ChatState.AWAITING_USER_INPUT)
        return True

    def quit(self) -> Optional[Path]:
        """
        Terminate the conversation and persist its transcript.

        Only turns recorded so far are written; an in-flight backend call is
        not waited for and its result will be discarded.

        Returns:
            Path of the written transcript

        Raises:
            TranscriptWriteError: If the transcript cannot be written
        """
        if self._state is ChatState.TERMINATED:
            # Written at most once; disk writes are never retried
            return self.transcript_path
        if self._pending_dispatch is not None:
            logger.info(f"Quitting with backend call {self._pending_dispatch} still outstanding")
            self._pending_dispatch = None
        self._transition(ChatState.TERMINATED)
        self.transcript_path = write_transcript(self.conversation, self.transcript_dir)
        return self.transcript_path

    async def handle(self, event: ChatEvent) -> None:
        """
        Apply one event to the conversation.

        Raises:
            ResponseDecodingError: If the pending backend call failed fatally;
                the transcript is persisted first
        """
        if isinstance(event, UserInput):
            self.submit(event.text)
        elif isinstance(event, BotReply):
            self.receive(event.response, event.dispatch_id)
        elif isinstance(event, BackendFailed):
            if event.dispatch_id != self._pending_dispatch:
                logger.info(f"Ignoring failure of superseded dispatch {event.dispatch_id}")
                return
            logger.error(
                f"Backend failed fatally: {event.error}",
                extra={"error_code": event.error.error.code, "error_details": event.error.error.details}
            )
            self.quit()
            raise event.error
        elif isinstance(event, Quit):
            self.quit()

    async def run(self) -> Optional[Path]:
        """Consume events until the conversation is terminated; returns the transcript path."""
        while self._state is not ChatState.TERMINATED:
            event = await self.events.get()
            await self.handle(event)
        return self.transcript_path

    def post_threadsafe(self, loop: asyncio.AbstractEventLoop, event: ChatEvent) -> None:
        """Hand an event to the controller's loop from another thread."""
        try:
            loop.call_soon_threadsafe(self.events.put_nowait, event)
        except RuntimeError:
            # Loop already closed: the session has ended
            logger.debug(f"Event loop closed, dropping {type(event).__name__}")

    def _dispatch(self, snapshot: ConversationSnapshot) -> None:
        loop = asyncio.get_running_loop()
        self._dispatch_id += 1
        self._pending_dispatch = self._dispatch_id
        logger.info(
            f"Dispatching turn {len(snapshot.user_turns)} to {self.backend.name} "
            f"(dispatch {self._dispatch_id})"
        )
        # Daemon thread: a quit never waits for an outstanding call
        worker = threading.Thread(
            target=self._call_backend,
            args=(loop, self._dispatch_id, snapshot),
            name=f"bot-backend-{self._dispatch_id}",
            daemon=True
        )
        worker.start()

    def _call_backend(
        self,
        loop: asyncio.AbstractEventLoop,
        dispatch_id: int,
        snapshot: ConversationSnapshot
    ) -> None:
        event: ChatEvent
        try:
            response = self.backend.get_response(
                snapshot.user_turns,
                snapshot.bot_turns,
                snapshot.system_prompt
            )
            event = BotReply(response=response, dispatch_id=dispatch_id)
        except ResponseDecodingError as e:
            event = BackendFailed(error=e, dispatch_id=dispatch_id)
        except Exception as e:
            logger.error(
                f"Unexpected error from {self.backend.name}: {e}",
                exc_info=True,
                extra={"error_type": type(e).__name__}
            )
            event = BotReply(
                response=BotResponse.failure(f"Unexpected error: {e}"),
                dispatch_id=dispatch_id
            )
        self.post_threadsafe(loop, event)
