"""
Caller identity for API routes.

Token issuing and verification happen in the upstream auth gateway, which
forwards the authenticated user id in the X-User-Id header.
"""
from typing import Optional

from fastapi import Header, HTTPException, status

USER_ID_HEADER = "X-User-Id"


async def get_optional_user_id(
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER)
) -> Optional[str]:
    """Return the caller's user id, or None for anonymous requests"""
    if x_user_id is None:
        return None
    x_user_id = x_user_id.strip()
    return x_user_id or None


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER)
) -> str:
    """Return the caller's user id, rejecting anonymous requests"""
    user_id = await get_optional_user_id(x_user_id)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user_id
