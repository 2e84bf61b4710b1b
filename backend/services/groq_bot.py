"""Groq bot backend using the Groq chat completions API."""
import logging
import os
import time
from typing import Any, Callable, Dict, Optional, Sequence

from groq import Groq
from groq import (
    APIConnectionError,
    APIError,
    APIResponseValidationError,
    APIStatusError,
    AuthenticationError,
    RateLimitError,
)

from config import (
    GROQ_API_KEY_ENV,
    GROQ_MAX_TOKENS,
    GROQ_TEMPERATURE,
    HTTP_TIMEOUT,
    RETRY_ATTEMPTS,
    RETRY_INITIAL_DELAY,
)
from models.conversation import BotResponse
from services.bot_backend import BotBackend, construct_messages
from services.credentials import format_remaining_time, get_remaining_token_time, is_three_part_token
from services.errors import CredentialError, ResponseDecodingError
from services.retry import RetryPolicy

logger = logging.getLogger(__name__)


class GroqBot(BotBackend):
    """Remote backend for chat models served by Groq."""

    SYSTEM_ROLE = "system"
    USER_ROLE = "user"
    BOT_ROLE = "assistant"

    def __init__(
        self,
        model: str,
        retry_policy: Optional[RetryPolicy] = None,
        max_tokens: int = GROQ_MAX_TOKENS,
        temperature: float = GROQ_TEMPERATURE,
        timeout: float = HTTP_TIMEOUT,
        sleep: Optional[Callable[[float], None]] = None
    ):
        """
        Initialize the Groq backend.

        Args:
            model: Groq model name (e.g. llama-3.1-8b-instant)
            retry_policy: Retry budget for connection failures
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            timeout: Request timeout in seconds
            sleep: Sleep used between retries (defaults to time.sleep)
        """
        self.name = model
        self.model = model
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=RETRY_ATTEMPTS,
            initial_delay=RETRY_INITIAL_DELAY
        )
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.sleep = sleep

    def get_response(
        self,
        user_turns: Sequence[str],
        bot_turns: Sequence[BotResponse],
        system_prompt: str
    ) -> BotResponse:
        api_key = os.getenv(GROQ_API_KEY_ENV)
        if not api_key:
            return BotResponse.failure("no api key")

        metadata: Dict[str, str] = {"model": self.model}
        if is_three_part_token(api_key):
            try:
                remaining = get_remaining_token_time(api_key)
            except CredentialError as e:
                logger.error(f"Groq credential error: {e}")
                return BotResponse.failure(str(e))
            metadata["auth_expires_in"] = format_remaining_time(remaining)

        messages = construct_messages(
            user_turns,
            bot_turns,
            system_prompt,
            self.SYSTEM_ROLE,
            self.USER_ROLE,
            self.BOT_ROLE
        )
        request = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

        # SDK retries off: the retry budget is RetryPolicy's alone
        client = Groq(api_key=api_key, max_retries=0, timeout=self.timeout)
        retry_kwargs = {"retry_on": (APIConnectionError,)}
        if self.sleep is not None:
            retry_kwargs["sleep"] = self.sleep

        start_time = time.time()
        try:
            response = self.retry_policy.call(
                lambda kwargs: client.chat.completions.create(**kwargs),
                request,
                **retry_kwargs
            )
        except APIConnectionError as e:
            return BotResponse.failure(
                f"Could not reach Groq after {self.retry_policy.max_attempts} attempts: {e}"
            )
        except APIResponseValidationError as e:
            raise ResponseDecodingError(
                "Groq returned a malformed response",
                model=self.model,
                original_error=str(e)
            ) from e
        except AuthenticationError as e:
            logger.error(f"Authentication error: model={self.model}, error={e}")
            return BotResponse.failure("Authentication failed. Please check your API key.")
        except RateLimitError as e:
            logger.error(f"Rate limit error: model={self.model}, error={e}")
            return BotResponse.failure("Rate limit exceeded. Please try again in a few moments.")
        except APIStatusError as e:
            logger.error(f"API error: model={self.model}, status={e.status_code}, error={e}")
            return BotResponse.failure(f"Groq API error ({e.status_code}): {e.message}")
        except APIError as e:
            logger.error(f"API error: model={self.model}, error={e}", exc_info=True)
            return BotResponse.failure(f"Groq API error: {e}")
        finally:
            client.close()

        latency_ms = int((time.time() - start_time) * 1000)
        content = self._extract_content(response)
        metadata.update(self._usage_metadata(response))
        metadata["latency_ms"] = str(latency_ms)

        logger.info(
            f"Generated response: model={self.model}, "
            f"input_tokens={metadata.get('tokens_input')}, "
            f"output_tokens={metadata.get('tokens_output')}, latency={latency_ms}ms"
        )
        return BotResponse(content=content, metadata=metadata)

    def _extract_content(self, response: Any) -> str:
        try:
            content = response.choices[-1].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise ResponseDecodingError(
                "Groq response has no choices",
                model=self.model,
                original_error=str(e)
            ) from e
        return content or ""

    @staticmethod
    def _usage_metadata(response: Any) -> Dict[str, str]:
        usage = getattr(response, "usage", None)
        if usage is None:
            return {}
        return {
            "tokens_input": str(usage.prompt_tokens),
            "tokens_output": str(usage.completion_tokens),
        }
