"""
app/api/deps.py

Purpose: Shared route dependencies

- Bearer token authentication (protect)
- Admin gate
"""

from typing import Optional, Dict, Any

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.exceptions import AuthenticationError, PermissionDeniedError
from app.core.security import decode_access_token
from app.services.user_service import get_user_by_id
from utils.constants import MSG_NO_TOKEN, MSG_TOKEN_FAILED, MSG_NOT_ADMIN

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Dict[str, Any]:
    """
    Resolves the caller from ``Authorization: Bearer <token>``.

    Raises:
        AuthenticationError: If the header is missing, the token is invalid
            or its user no longer exists
    """
    if not credentials or not credentials.credentials:
        raise AuthenticationError(MSG_NO_TOKEN)

    user_id = decode_access_token(credentials.credentials)
    user = await get_user_by_id(user_id)
    if not user:
        raise AuthenticationError(MSG_TOKEN_FAILED)
    return user


async def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not user.get("isAdmin"):
        raise PermissionDeniedError(MSG_NOT_ADMIN)
    return user
