"""ToastJam bot backend over the ToastJam HTTP completion API."""
import logging
import os
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from config import (
    HTTP_TIMEOUT,
    RETRY_ATTEMPTS,
    RETRY_INITIAL_DELAY,
    TOAST_AUTH_TOKEN_ENV,
    TOAST_JAM_MODEL,
    TOAST_JAM_URL,
    TOAST_PRODUCT,
    TOAST_ROUTING_HEADERS,
    TOAST_TEAM,
)
from models.conversation import BotResponse, Message
from services.bot_backend import BotBackend, construct_messages
from services.credentials import format_remaining_time, get_remaining_token_time
from services.errors import CredentialError, ResponseDecodingError
from services.retry import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class Parameters:
    """Sampling parameters of a ToastJam completion request."""
    ai_user_type: str = "llm"
    do_sample: bool = False
    max_new_tokens: int = 1024
    stop_sequences: List[str] = field(default_factory=list)
    temperature: float = 0.2
    top_k: int = 50
    top_p: float = 0.5


@dataclass
class ToastJamRequest:
    """JSON body of a ToastJam completion request."""
    correlation_id: str
    messages: List[Message]
    timestamp: str
    model: str = TOAST_JAM_MODEL
    parameters: Parameters = field(default_factory=Parameters)
    log_results: bool = False
    request_type: str = "COMPLETION"
    toast_jam_request_type: str = "TOAST_JAM"
    toast_product: str = TOAST_PRODUCT
    toast_team: str = TOAST_TEAM
    use_guardrail: bool = True

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


def format_timestamp(moment: datetime) -> str:
    """Render a UTC timestamp with millisecond precision, e.g. 2024-01-02T03:04:05.678Z."""
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


class ToastJamBot(BotBackend):
    """Remote backend calling the ToastJam completion service."""

    SYSTEM_ROLE = "SYSTEM"
    USER_ROLE = "USER"
    BOT_ROLE = "LLM"

    def __init__(
        self,
        name: str = "Toast Jam",
        url: str = TOAST_JAM_URL,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = HTTP_TIMEOUT,
        sleep: Optional[Callable[[float], None]] = None
    ):
        """
        Initialize the ToastJam backend.

        Args:
            name: Display name of the bot
            url: Completion endpoint
            retry_policy: Retry budget for transport failures
            timeout: HTTP timeout in seconds
            sleep: Sleep used between retries (defaults to time.sleep)
        """
        self.name = name
        self.url = url
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=RETRY_ATTEMPTS,
            initial_delay=RETRY_INITIAL_DELAY
        )
        self.timeout = timeout
        self.sleep = sleep

    def get_response(
        self,
        user_turns: Sequence[str],
        bot_turns: Sequence[BotResponse],
        system_prompt: str
    ) -> BotResponse:
        # Read per call; the token is refreshed outside this process
        token = os.getenv(TOAST_AUTH_TOKEN_ENV)
        try:
            remaining = get_remaining_token_time(token)
        except CredentialError as e:
            logger.error(
                f"ToastJam credential error: {e}",
                extra={"error_code": e.error.code, "error_details": e.error.details}
            )
            return BotResponse.failure(str(e))

        try:
            payload = self._make_call(user_turns, bot_turns, system_prompt, token)
        except httpx.TransportError as e:
            return BotResponse.failure(
                f"Could not reach ToastJam after {self.retry_policy.max_attempts} attempts: {e}"
            )
        except httpx.HTTPStatusError as e:
            logger.error(f"ToastJam returned HTTP {e.response.status_code}")
            return BotResponse.failure(
                f"ToastJam request failed with status {e.response.status_code}"
            )

        return BotResponse(
            content=self._extract_content(payload),
            metadata={"auth_expires_in": format_remaining_time(remaining)}
        )

    def build_request(
        self,
        user_turns: Sequence[str],
        bot_turns: Sequence[BotResponse],
        system_prompt: str,
        messages_to_cut: int = 0
    ) -> ToastJamRequest:
        return ToastJamRequest(
            correlation_id=str(uuid.uuid4()),
            messages=construct_messages(
                user_turns,
                bot_turns,
                system_prompt,
                self.SYSTEM_ROLE,
                self.USER_ROLE,
                self.BOT_ROLE,
                messages_to_cut
            ),
            timestamp=format_timestamp(datetime.now(timezone.utc)),
        )

    def _make_call(
        self,
        user_turns: Sequence[str],
        bot_turns: Sequence[BotResponse],
        system_prompt: str,
        token: str
    ) -> Dict[str, Any]:
        """
        POST the conversation to ToastJam and decode the JSON reply.

        Raises:
            httpx.TransportError: If every attempt failed at the transport layer
            httpx.HTTPStatusError: If the service answered with an error status
            ResponseDecodingError: If the body is not valid JSON
        """
        request = self.build_request(user_turns, bot_turns, system_prompt)
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            **TOAST_ROUTING_HEADERS,
        }
        logger.debug(
            f"Calling ToastJam: correlation_id={request.correlation_id}, "
            f"messages={len(request.messages)}"
        )

        retry_kwargs = {"retry_on": (httpx.TransportError,)}
        if self.sleep is not None:
            retry_kwargs["sleep"] = self.sleep

        with httpx.Client(timeout=self.timeout) as client:
            def post(body: Dict[str, Any]) -> httpx.Response:
                return client.post(self.url, headers=headers, json=body)

            response = self.retry_policy.call(post, request.to_payload(), **retry_kwargs)

        response.raise_for_status()
        try:
            return response.json()
        except ValueError as e:
            raise ResponseDecodingError(
                "ToastJam returned a body that is not JSON",
                correlation_id=request.correlation_id
            ) from e

    @staticmethod
    def _extract_content(payload: Any) -> str:
        try:
            messages = payload["messages"]
            return messages[-1]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ResponseDecodingError(
                "ToastJam reply has no messages",
                original_error=str(e)
            ) from e
