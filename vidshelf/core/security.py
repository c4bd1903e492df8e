"""
Token verification.

Access tokens are issued by the account service and signed with the shared
SECRET_KEY. This module only verifies them (python-jose) and extracts the
claims; issuing, refreshing and revoking tokens happen elsewhere.

References:
-----------
- FastAPI Security: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
- JWT Standard: https://jwt.io/introduction
"""

from typing import Any

from jose import JWTError, jwt

from vidshelf.core.config import settings


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and verify a JWT access token.

    Checks the signature, the algorithm and the ``exp`` claim.

    Args:
        token: JWT token string from the Authorization header

    Returns:
        Dictionary of claims if valid, None if invalid or expired

    Example:
        >>> decode_access_token("invalid.token.here") is None
        True
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def subject_user_id(payload: dict[str, Any]) -> int | None:
    """Return the numeric user id carried in the ``sub`` claim, if any."""
    sub = payload.get("sub")
    if sub is None:
        return None
    try:
        return int(sub)
    except (TypeError, ValueError):
        return None
