"""
Authentication-related Pydantic schemas.
"""
from typing import Optional
from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    """The authenticated user, as read from the Supabase access token."""
    id: str = Field(..., description="User unique identifier")
    email: Optional[str] = Field(None, description="User email address")
    email_confirmed_at: Optional[str] = Field(None, description="Email confirmation timestamp")
