"""Identity extraction from bearer tokens carried in the context.

Tokens reaching the logger have already been validated by the host's auth
layer, so claims are read without signature verification.
"""

import logging
from typing import Dict, Optional

import jwt

logger = logging.getLogger(__name__)

USER_ID_CLAIMS = ("sub", "userId", "user_id", "id")
SESSION_ID_CLAIMS = ("sessionId", "sid")
APPLICATION_ID_CLAIMS = ("applicationId", "app_id")


def _first_claim(claims: dict, names) -> Optional[str]:
    for name in names:
        value = claims.get(name)
        if value:
            return str(value)
    return None


def extract_token_context(token: Optional[str]) -> Dict[str, str]:
    """Read user, session and application ids from a JWT.

    Returns an empty dict for a missing or undecodable token.
    """
    if not token:
        return {}

    if token.lower().startswith("bearer "):
        token = token[7:]

    try:
        claims = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
        )
    except jwt.PyJWTError as e:
        logger.debug(f"Could not decode context token: {e}")
        return {}

    if not isinstance(claims, dict):
        return {}

    extracted = {
        "user_id": _first_claim(claims, USER_ID_CLAIMS),
        "session_id": _first_claim(claims, SESSION_ID_CLAIMS),
        "application_id": _first_claim(claims, APPLICATION_ID_CLAIMS),
    }
    return {k: v for k, v in extracted.items() if v is not None}
