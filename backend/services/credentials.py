"""Bearer token inspection for the remote bot backends."""
import logging
import math
import time
from typing import Callable, Optional

from jose import JWTError, jwt

from services.errors import CredentialError

logger = logging.getLogger(__name__)


def get_remaining_token_time(
    token: Optional[str],
    now: Callable[[], float] = time.time
) -> int:
    """
    Return the number of seconds until a JWT bearer token expires.

    Only the claims segment is decoded; the signature is not verified
    since the token is checked by the remote service.

    Args:
        token: Three-part dot-delimited token
        now: Clock returning the current Unix time

    Returns:
        Remaining lifetime in whole seconds

    Raises:
        CredentialError: If the token is missing, malformed or expired
    """
    if not token:
        raise CredentialError("no token")

    if not is_three_part_token(token):
        raise CredentialError("auth token invalid", reason="not a three-part token")

    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as e:
        raise CredentialError("auth token invalid", reason=str(e)) from e

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise CredentialError("auth token invalid", reason="missing exp claim")
    if not math.isfinite(exp):
        raise CredentialError("auth token invalid", reason="non-finite exp claim")

    remaining = int(exp) - int(now())
    if remaining < 0:
        logger.warning(f"Auth token expired {-remaining}s ago")
        raise CredentialError("auth token expired", expired_for=-remaining)
    return remaining


def format_remaining_time(remaining_seconds: int) -> str:
    """Render a token lifetime as ``"<m> minutes and <s> seconds"``."""
    minutes, seconds = divmod(remaining_seconds, 60)
    return f"{minutes} minutes and {seconds} seconds"


def is_three_part_token(token: str) -> bool:
    return len(token.split(".")) == 3
