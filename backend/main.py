"""Main entry point for the chatbot CLI."""
import argparse
import asyncio
import logging
import signal
import sys
import threading
from typing import List, Optional, TextIO

from config import (
    CHATBOT_LOG_FILE,
    CHATBOT_LOGS,
    DEFAULT_MODEL,
    DEFAULT_SYSTEM_PROMPT,
    LOG_LEVEL,
)
from logger import setup_logging
from models.conversation import Conversation
from services.bot_selector import available_backends, select_backend
from services.conversation_controller import (
    ChatState,
    ConversationController,
    Quit,
    UserInput,
)
from services.errors import ResponseDecodingError, TranscriptWriteError, UnknownBackendError
from services.transcript import BOT_PROMPT

logger = logging.getLogger(__name__)

QUIT_COMMANDS = {"/quit", "/exit"}

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_UNKNOWN_BACKEND = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with a bot in the terminal")
    parser.add_argument(
        "system_prompt",
        nargs="?",
        default=DEFAULT_SYSTEM_PROMPT,
        help="System prompt sent ahead of the conversation"
    )
    parser.add_argument(
        "--model",
        default=DEFAULT_MODEL,
        help=f"Bot backend to talk to ({', '.join(available_backends())})"
    )
    parser.add_argument(
        "--log-level",
        default=LOG_LEVEL,
        help="Log level (logs go to CHATBOT_LOG_FILE when set, stderr otherwise)"
    )
    parser.add_argument(
        "--transcript-dir",
        default=CHATBOT_LOGS,
        help="Directory the transcript is written to on exit (default: $CHATBOT_LOGS)"
    )
    return parser.parse_args(argv)


class ConsoleView:
    """Prints the conversation as the controller moves between states."""

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out or sys.stdout

    def greet(self, system_prompt: str) -> None:
        self._write(f"Initial Prompt: {system_prompt}")
        self._write(f"{BOT_PROMPT}Hello!")

    def on_transition(self, old_state: ChatState, new_state: ChatState, conversation: Conversation) -> None:
        if new_state is ChatState.BOT_RESPONDING:
            self._write("... thinking")
        elif new_state is ChatState.AWAITING_USER_INPUT and conversation.bot_turns:
            self._write(f"{BOT_PROMPT}{conversation.bot_turns[-1].content}")
        elif new_state is ChatState.TERMINATED:
            self._write(f"{BOT_PROMPT}Goodbye!")

    def _write(self, line: str) -> None:
        self.out.write(line + "\n")
        self.out.flush()


def read_user_input(
    controller: ConversationController,
    loop: asyncio.AbstractEventLoop,
    stream: TextIO
) -> None:
    """Forward lines typed by the user to the controller until EOF or a quit command."""
    for line in stream:
        text = line.rstrip("\n")
        if text.strip() in QUIT_COMMANDS:
            break
        controller.post_threadsafe(loop, UserInput(text))
    controller.post_threadsafe(loop, Quit())


async def run_chat(controller: ConversationController, stream: Optional[TextIO] = None) -> None:
    loop = asyncio.get_running_loop()
    stream = stream or sys.stdin
    try:
        loop.add_signal_handler(signal.SIGINT, controller.events.put_nowait, Quit())
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers unavailable; Ctrl+C will not save the transcript")

    # Daemon thread: a blocked read must not keep the process alive after quit
    reader = threading.Thread(
        target=read_user_input,
        args=(controller, loop, stream),
        name="stdin-reader",
        daemon=True
    )
    reader.start()
    await controller.run()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level, CHATBOT_LOG_FILE)

    try:
        backend = select_backend(args.model)
    except UnknownBackendError as e:
        print(f"Error: {e}. Available models: {', '.join(available_backends())}", file=sys.stderr)
        return EXIT_UNKNOWN_BACKEND

    view = ConsoleView()
    controller = ConversationController(
        backend=backend,
        system_prompt=args.system_prompt,
        transcript_dir=args.transcript_dir,
        on_transition=view.on_transition
    )
    view.greet(args.system_prompt)
    view.out.write("Type a message and press Enter; /quit to exit.\n")

    try:
        asyncio.run(run_chat(controller))
    except KeyboardInterrupt:
        try:
            controller.quit()
        except TranscriptWriteError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_FATAL
    except TranscriptWriteError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL
    except ResponseDecodingError as e:
        print(f"Error: {e}", file=sys.stderr)
        if controller.transcript_path is not None:
            print(f"Transcript saved to {controller.transcript_path}", file=sys.stderr)
        return EXIT_FATAL

    logger.info(f"Session ended, transcript at {controller.transcript_path}")
    print(f"Transcript saved to {controller.transcript_path}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
