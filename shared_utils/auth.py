"""
Bearer-token verification.

Tokens are HS256 JWTs signed with ``JWT_SECRET`` and carry the caller's id
in a ``userId`` claim (``sub`` is accepted as a fallback) and an optional
``name`` claim.
"""

from typing import Any, Dict, Optional

import jwt

from domain.models import Identity
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import AuthenticationError
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.AUTH)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def decode_token(token: Optional[str], secret: str, algorithm: str = Defaults.JWT_ALGORITHM) -> Identity:
    """Verify a token and build the caller identity.

    Raises:
        AuthenticationError: Token missing, invalid, expired, or without a user id.
    """
    if not token:
        logger.warning("auth_token_missing")
        raise AuthenticationError("Access token required")
    if not secret:
        logger.error("auth_secret_not_configured")
        raise AuthenticationError("Token verification is not configured")

    try:
        claims: Dict[str, Any] = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.PyJWTError as exc:
        logger.warning("auth_token_invalid", error=str(exc))
        raise AuthenticationError("Invalid token") from exc

    user_id = claims.get("userId") or claims.get("sub")
    if not isinstance(user_id, str) or not user_id.strip():
        logger.warning("auth_token_without_user")
        raise AuthenticationError("User not authenticated")

    name = claims.get("name")
    return Identity(
        user_id=user_id.strip(),
        display_name=name if isinstance(name, str) else None,
        verified=True,
    )


def issue_token(user_id: str, secret: str, name: Optional[str] = None, algorithm: str = Defaults.JWT_ALGORITHM) -> str:
    """Sign a token for *user_id*.

    Admin and local tooling only (issuing test tokens); the service itself
    never issues tokens, it only verifies them.
    """
    claims: Dict[str, Any] = {"userId": user_id}
    if name:
        claims["name"] = name
    return jwt.encode(claims, secret, algorithm=algorithm)
