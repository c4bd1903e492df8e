"""
Authentication dependencies.

The catalog does not log anyone in. Clients present a bearer token issued
by the account service; these dependencies verify it and resolve the user
it names.

Dependencies:
-------------
- get_current_user: required caller; 401 without a valid token
- get_current_active_user: required caller whose account is enabled
- get_optional_user: caller if a valid token was sent, otherwise None
  (anonymous reads such as video detail)
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from vidshelf.core.security import decode_access_token, subject_user_id
from vidshelf.db.deps import get_db
from vidshelf.models.user import User

# tokenUrl points at the account service login; it only feeds the OpenAPI docs.
# auto_error=False so anonymous reads can share the same scheme.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/login", auto_error=False)


async def _resolve_user(token: Optional[str], db: AsyncSession) -> Optional[User]:
    if not token:
        return None

    payload = decode_access_token(token)
    if payload is None:
        return None

    user_id = subject_user_id(payload)
    if user_id is None:
        return None

    return await db.get(User, user_id)


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the caller from the bearer token.

    Raises:
        HTTPException 401: Missing, invalid or expired token, or unknown user.
            The same response is used for every case so the reason is not leaked.
    """
    user = await _resolve_user(token, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Caller whose account is enabled. Use for every mutating endpoint.

    Raises:
        HTTPException 400: If the account is disabled
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    return current_user


async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Caller if a valid token was sent. Invalid tokens are treated as anonymous."""
    return await _resolve_user(token, db)


CurrentUser = Annotated[User, Depends(get_current_active_user)]
OptionalUser = Annotated[Optional[User], Depends(get_optional_user)]
