"""User and login schemas"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime


class UserLogin(BaseModel):
    """User login schema"""
    email: EmailStr
    password: str = Field(..., min_length=1)
    remember_me: bool = False


class UserSummary(BaseModel):
    """User details returned alongside a token"""
    id: int
    name: str
    email: str
    role: str
    role_display: str

    class Config:
        from_attributes = True


class TokenUserSummary(BaseModel):
    """Compact user block in token status responses"""
    id: int
    name: str
    role: str

    class Config:
        from_attributes = True


class TokenInfo(BaseModel):
    expires_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None


class CurrentUserResponse(BaseModel):
    """Authenticated user plus the token used for this request"""
    user: UserSummary
    token_info: TokenInfo
