"""Authentication schemas.

This module defines Pydantic models for the JWT claims issued to users
and for the authenticated principal handed to services.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from docflow.models.enums import UserRole


class JWTClaims(BaseModel):
    """Decoded JWT access token claims."""

    sub: UUID = Field(..., description="Subject (user ID)")
    email: EmailStr = Field(..., description="User email")
    role: UserRole = Field(default=UserRole.USER, description="User role")
    company_id: Optional[UUID] = Field(None, description="Company the user belongs to")
    exp: int = Field(..., description="Expiration timestamp")
    iat: int = Field(..., description="Issued at timestamp")
    iss: Optional[str] = Field(None, description="Token issuer")


class CurrentUser(BaseModel):
    """Current authenticated user information."""

    id: UUID = Field(..., description="User ID")
    email: EmailStr = Field(..., description="User email")
    role: UserRole = Field(default=UserRole.USER, description="User role")
    company_id: Optional[UUID] = Field(None, description="Company the user belongs to")

