"""Transcript rendering and persistence for finished conversations."""
import logging
import os
from pathlib import Path
from typing import List, Union

from config import FILENAME_FRAGMENT_SIZE
from models.conversation import Conversation
from services.errors import TranscriptWriteError

logger = logging.getLogger(__name__)

HUMAN_PROMPT = "You: "
BOT_PROMPT = "Bot: "


def format_transcript(conversation: Conversation) -> str:
    """
    Render a conversation as a markdown document.

    Layout: system prompt heading, start time heading, an optional metadata
    line for the last bot turn (keys sorted), then one Human/Bot block pair
    per turn. A trailing user turn without a reply gets no Bot block.
    """
    parts: List[str] = [
        f"# System Prompt: {conversation.system_prompt}\n",
        f"## {conversation.started_at.strftime('%Y-%B-%d %H:%M:%S')}\n\n",
    ]

    if conversation.bot_turns:
        final_metadata = conversation.bot_turns[-1].metadata
        parts.append("## Metadata - ")
        for key in sorted(final_metadata):
            parts.append(f"{key}: {final_metadata[key]} ")
        parts.append("\n\n")

    for i, user_line in enumerate(conversation.user_turns):
        parts.append(f"### Human \n {HUMAN_PROMPT}{user_line}\n\n")
        if i < len(conversation.bot_turns):
            parts.append(f"### Bot \n {BOT_PROMPT}{conversation.bot_turns[i].content}\n\n")

    return "".join(parts)


def filename_fragment(conversation: Conversation, size: int = FILENAME_FRAGMENT_SIZE) -> str:
    """
    First ``size`` characters of the opening user turn (or the system prompt).

    Spaces, path separators and NUL bytes become underscores so the fragment
    always names a file inside the transcript directory.
    """
    if conversation.user_turns:
        line = conversation.user_turns[0]
    else:
        line = conversation.system_prompt
    fragment = line[:size]
    for unsafe in (" ", os.sep, os.altsep, "\0"):
        if unsafe:
            fragment = fragment.replace(unsafe, "_")
    return fragment


def transcript_filename(conversation: Conversation) -> str:
    started = conversation.started_at
    return (
        f"{started.strftime('%Y-%m-%d')}-{started.hour}-{started.minute}-{started.second}-"
        f"{filename_fragment(conversation)}.txt"
    )


def write_transcript(conversation: Conversation, directory: Union[str, Path]) -> Path:
    """
    Persist the transcript to ``directory``.

    The document is written to a temporary sibling and renamed into place,
    so a failed write leaves no partial transcript behind.

    Returns:
        Path of the written transcript

    Raises:
        TranscriptWriteError: If the file cannot be created, written or flushed
    """
    path = Path(directory) / transcript_filename(conversation)
    tmp_path = path.with_name(path.name + ".tmp")
    document = format_transcript(conversation)

    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(document)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as cleanup_error:
            logger.warning(f"Could not remove temporary transcript {tmp_path}: {cleanup_error}")
        logger.error(
            f"Could not write transcript to {path}: {e}",
            exc_info=True,
            extra={"error_code": TranscriptWriteError.code, "path": str(path)}
        )
        raise TranscriptWriteError(f"Could not write transcript to {path}: {e}", path=str(path)) from e

    logger.info(
        f"Wrote transcript: path={path}, user_turns={len(conversation.user_turns)}, "
        f"bot_turns={len(conversation.bot_turns)}"
    )
    return path
