"""
Verification of access tokens issued by Supabase Auth.

Sign-up, login and email verification all happen in Supabase; this API
only checks the resulting JWT and reads the user id from it.
"""
import logging
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from .config import settings

logger = logging.getLogger(__name__)


def verify_supabase_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify a Supabase JWT token.

    Supabase access tokens are signed with the project's JWT secret and
    carry audience "authenticated". Returns the claims, or None when the
    token is invalid or expired.
    """
    if not settings.supabase_jwt_secret:
        logger.error("SUPABASE_JWT_SECRET is not configured; rejecting token")
        return None

    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.supabase_jwt_audience,
        )
    except JWTError as e:
        logger.debug(f"Supabase token verification failed: {type(e).__name__}: {e}")
        return None
