"""
FastAPI dependencies for authentication.

Browser sessions send the Supabase access token in the `sb-access-token`
cookie; API clients send it as an Authorization Bearer header.
"""
from typing import Optional
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .security import verify_supabase_token
from ..schemas.auth import UserResponse


# HTTP Bearer token scheme (fallback for API clients)
security = HTTPBearer(auto_error=False)

SESSION_COOKIE = "sb-access-token"


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> UserResponse:
    """
    Dependency to get the current authenticated user.

    Raises:
        HTTPException: 401 if no token is sent or it does not verify
    """
    token = credentials.credentials if credentials else None
    if not token:
        token = request.cookies.get(SESSION_COOKIE)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_supabase_token(token)
    if not payload or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Store on the request so the rate limiter can key by user
    user = UserResponse(
        id=payload["sub"],
        email=payload.get("email"),
        email_confirmed_at=(payload.get("user_metadata") or {}).get("email_confirmed_at"),
    )
    request.state.user = user
    return user
