"""
Bot backend selection.

Maps the model identifier given at startup to a backend constructor. The
identifier is validated once, before the conversation begins.
"""
import logging
from typing import Callable, Dict

from config import GROQ_MODELS
from services.bot_backend import BotBackend, StubBot
from services.errors import UnknownBackendError
from services.groq_bot import GroqBot
from services.toast_jam import ToastJamBot

logger = logging.getLogger(__name__)

BackendFactory = Callable[[], BotBackend]

BACKENDS: Dict[str, BackendFactory] = {
    "toast": lambda: ToastJamBot(name="Toast Jam"),
    "stub": lambda: StubBot(name="stub"),
    "echo": lambda: StubBot(name="echo", echo=True),
}
for _model in GROQ_MODELS:
    BACKENDS[_model] = lambda model=_model: GroqBot(model=model)


def available_backends() -> list:
    return sorted(BACKENDS)


def select_backend(identifier: str) -> BotBackend:
    """
    Build the backend registered under ``identifier``.

    Raises:
        UnknownBackendError: If no backend is registered for the identifier
    """
    factory = BACKENDS.get((identifier or "").strip().lower())
    if factory is None:
        logger.error(f"Unknown model {identifier!r}")
        raise UnknownBackendError(
            f"Unknown model {identifier}",
            identifier=identifier,
            available=available_backends()
        )
    backend = factory()
    logger.info(f"Selected backend: {backend.name}")
    return backend
